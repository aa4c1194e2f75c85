def test_project_search(client, fake_jira):
    fake_jira.responses["search_projects"] = {"values": [{"id": "10000", "key": "SUP"}], "isLast": True}

    r = client.get("/api/projects", params={"query": "sup", "maxResults": 10})

    assert r.status_code == 200
    assert r.json()["values"][0]["key"] == "SUP"
    assert fake_jira.last("search_projects")[2] == {
        "start_at": 0,
        "max_results": 10,
        "order_by": "name",
        "query": "sup",
    }


def test_project_detail_statuses_and_types(client, fake_jira):
    fake_jira.responses["get_project"] = {"key": "SUP"}
    fake_jira.responses["get_project_statuses"] = [{"name": "Task", "statuses": []}]
    fake_jira.responses["get_project_issue_types"] = [{"id": "10001", "name": "Task"}]

    assert client.get("/api/projects/SUP").json() == {"key": "SUP"}
    assert client.get("/api/projects/SUP/statuses").json()[0]["name"] == "Task"
    assert client.get("/api/projects/SUP/issuetypes").json()[0]["id"] == "10001"


def test_issue_types(client, fake_jira):
    fake_jira.responses["get_issue_types"] = [{"id": "1"}]

    assert client.get("/api/issuetype").json() == [{"id": "1"}]
    assert client.get("/api/issuetype/project", params={"projectId": "10000"}).status_code == 200
    assert fake_jira.last("get_issue_types")[2] == {"project_id": "10000"}


def test_issue_types_for_project_require_id(client, fake_jira):
    r = client.get("/api/issuetype/project")
    assert r.status_code == 400
    assert r.json()["error"] == "projectId is required"
    assert fake_jira.calls == []


def test_lookups(client, fake_jira):
    fake_jira.responses["get_priorities"] = [{"name": "High"}]
    fake_jira.responses["get_fields"] = [{"id": "summary"}]
    fake_jira.responses["get_attachment"] = {"id": "77", "filename": "log.txt"}

    assert client.get("/api/priority").json() == [{"name": "High"}]
    assert client.get("/api/field").json() == [{"id": "summary"}]
    assert client.get("/api/attachment/77").json()["filename"] == "log.txt"


def test_create_meta_forwards_filters(client, fake_jira):
    fake_jira.responses["get_create_meta"] = {"projects": []}

    r = client.get("/api/issue/createmeta", params={"projectKeys": "SUP"})

    assert r.status_code == 200
    kwargs = fake_jira.last("get_create_meta")[2]
    assert kwargs["project_keys"] == "SUP"
    assert kwargs["project_ids"] is None
    assert kwargs["expand"] == "projects.issuetypes.fields"


def test_current_user_default_expand(client, fake_jira):
    fake_jira.responses["myself"] = {"accountId": "svc"}

    assert client.get("/api/user").json() == {"accountId": "svc"}
    assert fake_jira.last("myself")[2] == {"expand": "groups,applicationRoles"}


def test_user_search(client, fake_jira):
    fake_jira.responses["search_users"] = [{"accountId": "a"}]
    assert client.get("/api/user/search", params={"query": "ana"}).json() == [{"accountId": "a"}]
    assert fake_jira.last("search_users")[1] == ("ana",)


def test_assignable_users(client, fake_jira):
    fake_jira.responses["search_assignable_users"] = []

    assert client.get("/api/user/assignable/search").status_code == 400

    r = client.get("/api/user/assignable/search", params={"issueKey": "SUP-1", "query": "b"})
    assert r.status_code == 200
    assert fake_jira.last("search_assignable_users")[2] == {
        "project": None,
        "issue_key": "SUP-1",
        "max_results": 50,
    }

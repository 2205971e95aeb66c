API = "/api/v1"


def create_workflow(client, headers, name="Blog pipeline"):
    r = client.post(f"{API}/workflows", json={"name": name}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def append(client, headers, wid, **body):
    return client.post(f"{API}/workflows/{wid}/steps", json=body, headers=headers)


def step_orders(client, headers, wid):
    r = client.get(f"{API}/workflows/{wid}", headers=headers)
    assert r.status_code == 200, r.text
    return [(s["id"], s["step_order"]) for s in r.json()["steps"]]


def test_create_workflow_starts_at_version_1(client, auth_headers):
    body = create_workflow(client, auth_headers)
    assert body["id"].startswith("wf_")
    assert body["version"] == 1
    assert body["description"] is None


def test_workflow_detail_joins_prompt(client, auth_headers):
    prompt = client.post(f"{API}/prompts", json={"title": "Outline", "content": "Outline it"}, headers=auth_headers).json()
    wf = create_workflow(client, auth_headers)
    r = append(client, auth_headers, wf["id"], prompt_id=prompt["id"], notes="start here")
    assert r.status_code == 201, r.text

    detail = client.get(f"{API}/workflows/{wf['id']}", headers=auth_headers).json()
    step = detail["steps"][0]
    assert step["step_order"] == 1
    assert step["prompt"]["title"] == "Outline"
    assert step["custom_prompt"] is None
    assert step["notes"] == "start here"


def test_append_custom_step_to_empty_workflow(client, auth_headers):
    wf = create_workflow(client, auth_headers)
    r = append(client, auth_headers, wf["id"], custom_prompt="Write an intro")
    assert r.status_code == 201, r.text
    step = r.json()
    assert step["step_order"] == 1
    assert step["prompt_id"] is None


def test_append_with_both_or_neither_payload_is_422(client, auth_headers):
    wf = create_workflow(client, auth_headers)
    both = append(client, auth_headers, wf["id"], prompt_id="prm_x", custom_prompt="text")
    neither = append(client, auth_headers, wf["id"], notes="just notes")
    for r in (both, neither):
        assert r.status_code == 422, r.text
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert step_orders(client, auth_headers, wf["id"]) == []


def test_append_referencing_other_users_prompt_is_422(client, auth_headers, other_headers):
    theirs = client.post(f"{API}/prompts", json={"title": "t", "content": "c"}, headers=other_headers).json()
    wf = create_workflow(client, auth_headers)
    r = append(client, auth_headers, wf["id"], prompt_id=theirs["id"])
    assert r.status_code == 422, r.text


def test_remove_then_move_up(client, auth_headers):
    wf = create_workflow(client, auth_headers)
    a, b, c = (append(client, auth_headers, wf["id"], custom_prompt=t).json()["id"] for t in "ABC")

    r = client.delete(f"{API}/workflows/{wf['id']}/steps/{b}", headers=auth_headers)
    assert r.status_code == 204, r.text
    assert step_orders(client, auth_headers, wf["id"]) == [(a, 1), (c, 2)]

    r = client.post(f"{API}/workflows/{wf['id']}/steps/{c}/move", json={"direction": "up"}, headers=auth_headers)
    assert r.status_code == 200, r.text
    assert [(s["id"], s["step_order"]) for s in r.json()] == [(c, 1), (a, 2)]


def test_reorder_endpoint(client, auth_headers):
    wf = create_workflow(client, auth_headers)
    a, b = (append(client, auth_headers, wf["id"], custom_prompt=t).json()["id"] for t in "ab")

    r = client.put(f"{API}/workflows/{wf['id']}/steps/order", json={"step_ids": [b, a]}, headers=auth_headers)
    assert r.status_code == 200, r.text
    assert step_orders(client, auth_headers, wf["id"]) == [(b, 1), (a, 2)]

    bad = client.put(f"{API}/workflows/{wf['id']}/steps/order", json={"step_ids": [b]}, headers=auth_headers)
    assert bad.status_code == 422
    assert bad.json()["error"]["details"]


def test_stale_version_is_409(client, auth_headers):
    wf = create_workflow(client, auth_headers)
    a, b = (append(client, auth_headers, wf["id"], custom_prompt=t).json()["id"] for t in "ab")

    r = client.put(
        f"{API}/workflows/{wf['id']}/steps/order",
        json={"step_ids": [b, a], "expected_version": 1},
        headers=auth_headers,
    )
    assert r.status_code == 409, r.text
    assert r.json()["error"]["code"] == "CONFLICT"

    current = client.get(f"{API}/workflows/{wf['id']}", headers=auth_headers).json()["version"]
    r = client.put(
        f"{API}/workflows/{wf['id']}/steps/order",
        json={"step_ids": [b, a], "expected_version": current},
        headers=auth_headers,
    )
    assert r.status_code == 200, r.text


def test_update_step_and_normalize(client, auth_headers):
    wf = create_workflow(client, auth_headers)
    sid = append(client, auth_headers, wf["id"], custom_prompt="first draft").json()["id"]

    r = client.patch(f"{API}/workflows/{wf['id']}/steps/{sid}", json={"custom_prompt": "second draft"}, headers=auth_headers)
    assert r.status_code == 200, r.text
    assert r.json()["custom_prompt"] == "second draft"

    r = client.post(f"{API}/workflows/{wf['id']}/steps/normalize", headers=auth_headers)
    assert r.status_code == 200, r.text
    assert [s["step_order"] for s in r.json()] == [1]


def test_delete_workflow(client, auth_headers):
    wf = create_workflow(client, auth_headers)
    append(client, auth_headers, wf["id"], custom_prompt="x")
    assert client.delete(f"{API}/workflows/{wf['id']}", headers=auth_headers).status_code == 204
    r = client.get(f"{API}/workflows/{wf['id']}", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_other_user_sees_404_not_403(client, auth_headers, other_headers):
    wf = create_workflow(client, auth_headers)
    missing = client.get(f"{API}/workflows/wf_does_not_exist", headers=other_headers)
    foreign = client.get(f"{API}/workflows/{wf['id']}", headers=other_headers)
    assert missing.status_code == foreign.status_code == 404
    assert missing.json()["error"]["message"] == foreign.json()["error"]["message"]
    assert client.get(f"{API}/workflows", headers=other_headers).json() == []

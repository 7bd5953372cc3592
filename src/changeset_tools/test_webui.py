"""Tests for the web API."""

import pytest

from changeset_tools import webui
from changeset_tools.modules import FileChange, FileOperation, generate_xml_from_changes

BROKEN_XML = "<changed_files><file><file_path>a.txt</file_path>"


def make_xml(*changes):
    return generate_xml_from_changes([FileChange(*change) for change in changes])


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(webui, "_webui_port", 5000)
    webui.app.config["TESTING"] = True
    return webui.app.test_client()


@pytest.fixture
def socket_client():
    client = webui.socketio.test_client(webui.app)
    yield client
    client.disconnect()


def received(socket_client):
    return {message["name"]: message["args"][0] for message in socket_client.get_received()}


def test_index_describes_service(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "/api/apply-xml" in response.get_json()["endpoints"]


def test_unknown_route_returns_json_404(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.get_json() == {"success": False, "error": "Not found"}


def test_parse_xml(client):
    xml = make_xml(("a.txt", FileOperation.CREATE, "x", "add a"), ("b.txt", FileOperation.DELETE))
    response = client.post("/api/parse-xml", json={"xml": xml})

    data = response.get_json()
    assert response.status_code == 200
    assert data["changeCount"] == 2
    assert data["changes"][0] == {
        "operation": "CREATE",
        "path": "a.txt",
        "content": "x",
        "description": "add a",
        "status": "Ready to apply",
    }


def test_parse_failure_is_a_bad_request(client):
    response = client.post("/api/parse-xml", json={"xml": BROKEN_XML})
    assert response.status_code == 400
    assert "XML parsing failed" in response.get_json()["error"]


def test_missing_xml_is_a_bad_request(client):
    for endpoint in ("/api/parse-xml", "/api/preview-xml", "/api/apply-xml", "/api/format-xml"):
        response = client.post(endpoint, json={})
        assert response.status_code == 400
        assert response.get_json()["error"] == "No XML content provided"


def test_preview_xml(client, project_dir):
    response = client.post("/api/preview-xml", json={
        "xml": make_xml(("a.txt", FileOperation.UPDATE, "x")),
        "repoPath": str(project_dir),
    })
    previews = response.get_json()["previews"]
    assert previews[0]["warning"] == "File doesn't exist"


def test_apply_xml_writes_files(client, project_dir):
    response = client.post("/api/apply-xml", json={
        "xml": make_xml(("src/a.txt", FileOperation.CREATE, "hello")),
        "repoPath": str(project_dir),
    })
    data = response.get_json()
    assert data["success"]
    assert data["updatedFiles"] == ["src/a.txt"]
    assert (project_dir / "src" / "a.txt").read_text(encoding="utf-8") == "hello"


def test_apply_xml_dry_run(client, project_dir):
    response = client.post("/api/apply-xml", json={
        "xml": make_xml(("a.txt", FileOperation.CREATE, "x"), ("../b.txt", FileOperation.CREATE, "y")),
        "repoPath": str(project_dir),
        "dryRun": True,
    })
    data = response.get_json()
    assert data["updatedFiles"] == ["a.txt"]
    assert data["failedFiles"][0]["path"] == "../b.txt"
    assert data["warningMessage"] == "1 of 2 file changes failed"
    assert list(project_dir.iterdir()) == []


def test_apply_parsed_changes(client, project_dir):
    response = client.post("/api/apply-xml", json={
        "changes": [{"operation": "CREATE", "path": "data.json", "content": '{"a":1}'}],
        "repoPath": str(project_dir),
    })
    assert response.get_json()["success"]
    assert (project_dir / "data.json").read_text(encoding="utf-8") == '{\n  "a": 1\n}\n'


def test_apply_respects_format_flag(client, project_dir):
    client.post("/api/apply-xml", json={
        "xml": make_xml(("data.json", FileOperation.CREATE, '{"a":1}')),
        "repoPath": str(project_dir),
        "format": False,
    })
    assert (project_dir / "data.json").read_text(encoding="utf-8") == '{"a":1}'


def test_format_xml_reports_repairs(client):
    xml = ("<changed_files><file><file_operation>CREATE</file_operation><file_path>a.php</file_path>"
           "<file_code><?php echo 1;</file_code></file></changed_files>")
    data = client.post("/api/format-xml", json={"xml": xml}).get_json()

    assert data["valid"]
    assert data["error"] is None
    assert data["rules"] == ["PhpTag"]
    assert "<file_code><![CDATA[ <?php echo 1;]]></file_code>" in data["xml"]


def test_format_xml_reports_remaining_errors(client):
    data = client.post("/api/format-xml", json={"xml": BROKEN_XML}).get_json()
    assert not data["valid"]
    assert data["error"]


def test_server_settings_round_trip(client):
    data = client.get("/api/server-settings").get_json()
    assert data["port"] == 5000
    assert data["auto_format"] is True

    response = client.post("/api/server-settings", json={"port": 5055, "auto_format": False})
    data = response.get_json()
    assert data["success"]
    assert data["settings"]["port"] == 5055
    assert data["settings"]["auto_format"] is False
    assert client.get("/api/server-settings").get_json()["port"] == 5055


def test_server_settings_rejects_bad_port(client):
    response = client.post("/api/server-settings", json={"port": 80})
    assert response.status_code == 400
    assert "between 1024 and 65535" in response.get_json()["error"]


def test_socket_parse(socket_client):
    socket_client.emit("xml_parse", {"xml": make_xml(("a.txt", FileOperation.CREATE, "x"))})
    events = received(socket_client)
    assert events["xml_parse_complete"]["changeCount"] == 1


def test_socket_parse_error(socket_client):
    socket_client.emit("xml_parse", {"xml": BROKEN_XML})
    events = received(socket_client)
    assert events["xml_error"]["message"].startswith("Error parsing XML: XML parsing failed")


def test_socket_apply(socket_client, project_dir):
    socket_client.emit("xml_apply", {
        "xml": make_xml(("a.txt", FileOperation.CREATE, "x")),
        "repoPath": str(project_dir),
    })
    events = received(socket_client)
    assert events["xml_apply_start"] == {"repoPath": str(project_dir)}
    assert events["xml_apply_complete"]["updatedFiles"] == ["a.txt"]
    assert (project_dir / "a.txt").exists()


def test_socket_apply_requires_repo_path(socket_client):
    socket_client.emit("xml_apply", {"xml": make_xml(("a.txt", FileOperation.CREATE, "x"))})
    assert received(socket_client)["xml_error"] == {"message": "No repository path provided"}

import threading

import pytest
import requests

from server import make_server, status_code


class StubPipeline:
    def __init__(self, run_payload):
        self.run_payload = run_payload
        self.runs = 0

    def run(self):
        self.runs += 1
        return self.run_payload

    def status(self):
        return {"success": True, "status": "idle", "winners": [{"wallet": "alice"}], "cycle": {"cycle_id": 1}}


@pytest.fixture
def serve(tmp_path):
    servers = []

    def start(pipeline):
        (tmp_path / "index.html").write_text("<h1>drip</h1>")
        httpd = make_server(pipeline, port=0, directory=str(tmp_path), host="127.0.0.1")
        threading.Thread(target=httpd.serve_forever, daemon=True).start()
        servers.append(httpd)
        return f"http://127.0.0.1:{httpd.server_address[1]}"

    yield start
    for httpd in servers:
        httpd.shutdown()
        httpd.server_close()


def test_trigger_runs_pipeline(serve):
    pipeline = StubPipeline({"success": True, "status": "executed"})
    base = serve(pipeline)

    response = requests.get(f"{base}/api/claim", timeout=5)
    assert response.status_code == 200
    assert response.json()["status"] == "executed"
    assert pipeline.runs == 1


def test_not_configured_is_503(serve):
    base = serve(StubPipeline({"success": False, "status": "not_configured"}))
    assert requests.get(f"{base}/api/claim", timeout=5).status_code == 503


def test_read_endpoints_do_not_run(serve):
    pipeline = StubPipeline({"success": True, "status": "executed"})
    base = serve(pipeline)

    assert requests.post(f"{base}/api/claim", timeout=5).json() == {"winners": [{"wallet": "alice"}]}
    assert requests.get(f"{base}/api/status", timeout=5).json()["status"] == "idle"
    assert "drip" in requests.get(f"{base}/index.html", timeout=5).text
    assert pipeline.runs == 0


@pytest.mark.parametrize("payload, code", [
    ({"success": True, "status": "already_executed"}, 200),
    ({"success": False, "status": "executed"}, 500),
    ({"success": False, "status": "no_holders"}, 500),
    ({"success": False, "status": "not_configured"}, 503),
])
def test_status_code(payload, code):
    assert status_code(payload) == code

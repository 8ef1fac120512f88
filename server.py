import http.server
import json
import os
import socketserver
import threading
import time
import traceback
import webbrowser

from logs import log, Style

PORT = 8000
DIRECTORY = os.path.join(os.path.dirname(os.path.abspath(__file__)), "web")

FAILURE_STATUS = {
    "not_configured": 503,
}


def status_code(payload: dict) -> int:
    if payload.get("success"):
        return 200
    return FAILURE_STATUS.get(payload.get("status"), 500)


def make_handler(pipeline, directory: str = DIRECTORY):
    class Handler(http.server.SimpleHTTPRequestHandler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, directory=directory, **kwargs)

        def log_message(self, format, *args):
            # Silence server logs to keep terminal clean
            pass

        def _send_json(self, payload: dict, code: int = 200):
            body = json.dumps(payload).encode("utf-8")
            self.send_response(code)
            self.send_header("Content-Type", "application/json")
            self.send_header("Cache-Control", "no-store")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def do_GET(self):
            path = self.path.split("?", 1)[0]
            if path == "/api/claim":
                log("TRIGGER", "Manual pipeline trigger", Style.CYAN)
                payload = pipeline.run()
                self._send_json(payload, status_code(payload))
            elif path == "/api/status":
                self._send_json(pipeline.status())
            else:
                super().do_GET()

        def do_POST(self):
            path = self.path.split("?", 1)[0]
            if path == "/api/claim":
                self._send_json({"winners": pipeline.status()["winners"]})
            else:
                self._send_json({"error": "not found"}, 404)

    return Handler


class DripServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    daemon_threads = True
    allow_reuse_address = True


def make_server(pipeline, port: int = PORT, directory: str = DIRECTORY, host: str = "0.0.0.0") -> DripServer:
    if not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)
        log("SERVER", f"Created directory: {directory}", Style.DIM)
    return DripServer((host, port), make_handler(pipeline, directory))


def open_browser(port: int = PORT):
    # Only open browser if NOT in a cloud environment
    if not os.getenv("RAILWAY_STATIC_URL") and not os.getenv("RAILWAY_ENVIRONMENT"):
        time.sleep(1)
        webbrowser.open(f"http://localhost:{port}")


def run_server(pipeline, port: int = PORT, directory: str = DIRECTORY, retries: int = 5):

    for attempt in range(1, retries + 1):
        try:
            with make_server(pipeline, port, directory) as httpd:
                log("SERVER", f"✅ DRIP SERVER ACTIVE: http://0.0.0.0:{port} (serving {directory})", Style.GREEN)
                httpd.serve_forever()
                return
        except Exception as e:
            log("ERROR", f"❌ SERVER CRASH: {e}", Style.RED)
            log("ERROR", f"Traceback: {traceback.format_exc()}", Style.RED)
            if attempt < retries:
                log("SERVER", "🔄 Attempting to restart server...", Style.YELLOW)
                time.sleep(5)


if __name__ == "__main__":
    from config import Config
    from logs import set_log_file
    from pipeline import build_pipeline

    config = Config.from_env()
    set_log_file(config.log_file_path)
    threading.Thread(target=open_browser, args=(config.port,), daemon=True).start()
    run_server(build_pipeline(config), config.port, config.web_dir)

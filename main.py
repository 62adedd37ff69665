"""
main.py — CertifyMe local client entry point

Starts the local FastAPI app on a free port and opens it in the browser
when a page is installed under static/.
"""

import logging
import os
import socket
import sys
import threading
import time
import traceback
import webbrowser

from config import API_URL, BASE_DIR, DEFAULT_HOST, DEFAULT_PORT, LOG_FILE, STATIC_DIR

# ── Logging ──────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # log file locked: console only
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# ── Server & network helpers ─────────────────────────────────────────────────

def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((DEFAULT_HOST, DEFAULT_PORT))
        except OSError:
            s.bind((DEFAULT_HOST, 0))
        return s.getsockname()[1]


def _wait_for_server(port: int, timeout: float = 15.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False


def _start_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Starting uvicorn on port {port} (backend: {API_URL})")
        app = create_app()
        uvicorn.run(app, host=DEFAULT_HOST, port=port, log_level="warning")
    except Exception:
        logger.error(f"Server error:\n{traceback.format_exc()}")

# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("=== CertifyMe client started ===")
    os.chdir(BASE_DIR)

    port = _find_free_port()
    server_thread = threading.Thread(target=_start_server, args=(port,), daemon=True)
    server_thread.start()

    if _wait_for_server(port):
        url = f"http://{DEFAULT_HOST}:{port}"
        logger.info(f"Server ready at {url}")
        from api.app import index_path
        if os.path.exists(index_path()):
            webbrowser.open(url)
        else:
            logger.info(f"No page installed in {STATIC_DIR}; JSON API only at {url}/api")

        try:
            while True:
                time.sleep(10)
        except KeyboardInterrupt:
            logger.info("Stopped by user.")
    else:
        logger.error("Server did not start in time.")
        sys.exit(1)

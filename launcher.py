import argparse
import logging
import os
import socket
import subprocess
import sys
import time
import webbrowser

HERE = os.path.dirname(os.path.abspath(__file__))
DASHBOARD = os.path.join(HERE, "dashboard.py")
DEFAULT_PORT = 8501

log = logging.getLogger(__name__)


def find_free_port(start=DEFAULT_PORT, limit=20):
    for p in range(start, start + limit):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(("127.0.0.1", p))
                return p
            except OSError:
                continue
    return start


def wait_for_port(port, timeout=10.0):
    t0 = time.time()
    while time.time() - t0 < timeout:
        try:
            with socket.create_connection(("127.0.0.1", port), 0.25):
                return True
        except OSError:
            time.sleep(0.25)
    return False


def streamlit_command(port):
    return [sys.executable, "-m", "streamlit", "run", DASHBOARD,
            "--server.headless=true",
            "--browser.gatherUsageStats=false",
            f"--server.port={port}",
            "--server.address=127.0.0.1"]


def main(argv=None):
    ap = argparse.ArgumentParser(description="Start the PDF whitespace dashboard locally.")
    ap.add_argument("--port", type=int, default=None, help="Port to serve on (default: first free from 8501)")
    ap.add_argument("--no-browser", action="store_true", help="Do not open a browser tab")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    port = args.port or find_free_port(DEFAULT_PORT)
    proc = subprocess.Popen(streamlit_command(port))
    if wait_for_port(port, 20):
        url = f"http://127.0.0.1:{port}"
        log.info("Dashboard running at %s", url)
        if not args.no_browser:
            webbrowser.open(url, new=1)
    else:
        log.warning("Dashboard did not come up on port %d yet", port)
    return proc.wait()


if __name__ == "__main__":
    sys.exit(main())

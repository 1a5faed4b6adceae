#!/usr/bin/env python3
"""
Startup script: free the gateway port, then start the gateway and wait for /health.
Optional: --no-kill, --background, --port.
"""
import argparse
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import httpx

ROOT = Path(__file__).resolve().parent.parent
PID_FILE = ROOT / "scripts" / ".startup_pid"

process: subprocess.Popen | None = None


def get_pids_on_port(port: int) -> list[int]:
    """Return list of PIDs listening on the given port (macOS/Linux)."""
    try:
        result = subprocess.run(
            ["lsof", "-ti", f":{port}"],
            cwd=str(ROOT),
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return []
    out = (result.stdout or "").strip()
    if result.returncode != 0 or not out:
        return []
    return [int(x) for x in out.split() if x.strip().isdigit()]


def kill_port(port: int) -> bool:
    for pid in get_pids_on_port(port):
        try:
            subprocess.run(["kill", "-9", str(pid)], check=True, timeout=5)
            print(f"  Killed PID {pid} on port {port}")
        except subprocess.CalledProcessError as e:
            print(f"  Warning: failed to kill PID {pid} on port {port}: {e}", file=sys.stderr)
            return False
    return True


def wait_for_health(url: str, timeout: int = 30) -> bool:
    start = time.time()
    while time.time() - start < timeout:
        try:
            if httpx.get(f"{url}/health", timeout=2).status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(0.5)
    return False


def cleanup(sig=None, frame=None):
    if process is not None and process.poll() is None:
        # SIGTERM lets the gateway drain its worker pool before exiting
        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()
    if PID_FILE.exists():
        PID_FILE.unlink(missing_ok=True)
    sys.exit(0)


def main():
    global process
    parser = argparse.ArgumentParser(description="Free the gateway port, then start the gateway.")
    parser.add_argument("--config", default=os.environ.get("CONFIG_PATH", "config/app.json"), help="App config path")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8000")))
    parser.add_argument("--no-kill", action="store_true", help="Do not kill processes on the port; only start")
    parser.add_argument("--background", action="store_true", help="Run in background; write the PID to scripts/.startup_pid")
    args = parser.parse_args()

    if not (ROOT / args.config).exists():
        print(f"Error: config not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    if not args.no_kill:
        print(f"Freeing port {args.port}...")
        kill_port(args.port)

    process = subprocess.Popen(
        [sys.executable, "-m", "dualquery.gateway.main"],
        cwd=str(ROOT),
        env={**os.environ, "CONFIG_PATH": args.config, "PORT": str(args.port)},
        stdout=subprocess.DEVNULL if args.background else None,
        stderr=subprocess.PIPE if args.background else None,
    )
    print(f"Gateway started on port {args.port} (PID {process.pid})")
    if not wait_for_health(f"http://127.0.0.1:{args.port}"):
        print("Warning: gateway did not report healthy within 30s", file=sys.stderr)

    if args.background:
        PID_FILE.parent.mkdir(parents=True, exist_ok=True)
        PID_FILE.write_text(str(process.pid))
        print(f"Running in background. PID saved to {PID_FILE}")
        return

    signal.signal(signal.SIGINT, cleanup)
    signal.signal(signal.SIGTERM, cleanup)
    print("Running. Press Ctrl+C to stop.")
    while process.poll() is None:
        time.sleep(1)
    print(f"Gateway {process.pid} exited.")
    cleanup()


if __name__ == "__main__":
    main()

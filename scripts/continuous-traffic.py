#!/usr/bin/env python3
"""
Continuous traffic generator for the grocery store service.
Runs generate-traffic.py until manually stopped with Ctrl+C.
"""
import argparse
import os
import signal
import subprocess
import sys

process = None


def stop(sig, frame):
    print("\n\nStopping traffic generation...")
    if process:
        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
    sys.exit(0)


signal.signal(signal.SIGINT, stop)
signal.signal(signal.SIGTERM, stop)

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run shopper traffic until interrupted")
    parser.add_argument("--users", type=int, default=50, help="Concurrent shoppers (default: 50)")
    parser.add_argument("--url", type=str, default="http://localhost:8000", help="API URL")
    args = parser.parse_args()

    print("Starting continuous traffic generation...")
    print("Press Ctrl+C to stop")
    print(f"Using {args.users} concurrent shoppers against {args.url}\n")

    generate_traffic_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "generate-traffic.py")

    process = subprocess.Popen(
        [sys.executable, generate_traffic_path, "--users", str(args.users), "--duration", "999999", "--url", args.url],
        stdout=sys.stdout,
        stderr=sys.stderr
    )
    process.wait()

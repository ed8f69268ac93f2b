# SPDX-License-Identifier: MIT
# Copyright (c) 2024 Collegiate Cyber Defense Club
import os
import subprocess
import sys


# Define the default command to run uvicorn with environment variables
def run_uvicorn():
    host = os.getenv("ROSTER_HOST", "0.0.0.0")
    port = os.getenv("ROSTER_PORT", "8000")
    forwarded_allow_ips = os.getenv("ROSTER_FORWARDED_ALLOW_IPS")

    # One worker: the roster cache lives in process memory.
    command = [
        "uvicorn",
        "roster.main:app",
        "--host",
        host,
        "--port",
        port,
        "--workers",
        "1",
    ]

    if forwarded_allow_ips is not None:
        command.extend(["--forwarded-allow-ips", forwarded_allow_ips])
        command.append("--proxy-headers")

    subprocess.run(command)


def run_dev():
    host = os.getenv("ROSTER_HOST", "0.0.0.0")
    port = os.getenv("ROSTER_PORT", "8000")
    command = ["uvicorn", "roster.main:app", "--host", host, "--port", port, "--reload"]
    subprocess.run(command)


# First-time Google consent, before any officer can log in.
def run_authorize():
    from roster.util.credentials import GoogleCredentials
    from roster.util.settings import Settings

    google = Settings().google
    credentials = GoogleCredentials(
        google.credentials_file, google.token_file, google.scopes
    )
    print("Authorize this app by visiting this url:", credentials.authorization_url())
    code = input("Enter the code from that page here: ").strip()
    credentials.exchange_code(code)
    print(f"Token stored to {google.token_file}")


# Entry point
if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "authorize":
        run_authorize()
    elif len(sys.argv) > 1 and sys.argv[1] == "dev":
        run_dev()
    else:
        run_uvicorn()

"""Python client for a Sails server.

Issues a few virtual requests over one socket. Requests sent before the
socket connects are queued and replayed once it does.

    pip install sails-client

    python examples/client_python.py --url ws://localhost:1337/socket
"""

import argparse
import asyncio
import logging

from sails_client import create_client


async def main(url: str, environment: str):
    client = create_client(url=url, environment=environment)

    # Bound on the placeholder, replayed on the live socket
    client.on("connect", lambda: print(f"Connected to {url}"))
    client.on("user", lambda payload: print(f"[user] {payload}"))

    # Queued until the socket connects
    users = await client.get("/user")
    print(f"GET /user -> {users.status_code}: {users.body}")

    client.post(
        "/user",
        {"name": "Ada"},
        lambda body, response: print(f"POST /user -> {response.status_code}: {body}"),
    )

    await asyncio.sleep(1.0)
    await client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sails Python client")
    parser.add_argument("--url", default="ws://localhost:1337/socket")
    parser.add_argument("--environment", default="development")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(args.url, args.environment))

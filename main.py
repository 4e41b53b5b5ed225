"""CLI entrypoint: API server, one-off jobs and API-key issuance."""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import List

import uvicorn

from config import get_settings
from core import JobOrigin
from utils.logger import configure_service_logging
from webapp.runtime import get_api_key_service, get_orchestrator


async def _create_and_run(owner_id: str, urls: List[str]) -> dict:
    orchestrator = get_orchestrator()
    job = orchestrator.create_job(owner_id, urls, origin=JobOrigin.DASHBOARD)
    await orchestrator.drain()
    final = orchestrator.get_job(owner_id, job.id)
    payload = final.model_dump(mode="json", exclude={"script"})
    payload["share_url"] = orchestrator.share_url(final)
    return payload


def main() -> None:
    parser = argparse.ArgumentParser(description="PR Reel CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    create = sub.add_parser("create")
    create.add_argument("--owner", required=True)
    create.add_argument("--url", action="append", required=True, dest="urls")

    issue = sub.add_parser("issue-key")
    issue.add_argument("--owner", required=True)
    issue.add_argument("--name", required=True)

    args = parser.parse_args()
    configure_service_logging(level=get_settings().app.log_level)

    if args.command == "serve":
        uvicorn.run("webapp.app:app", host=args.host, port=args.port, reload=args.reload)
        return

    if args.command == "create":
        payload = asyncio.run(_create_and_run(args.owner, args.urls))
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if args.command == "issue-key":
        issued = get_api_key_service().issue(args.owner, args.name)
        print(
            json.dumps(
                {
                    "id": issued.credential.id,
                    "name": issued.credential.name,
                    "key": issued.key,
                    "key_prefix": issued.credential.key_prefix,
                },
                ensure_ascii=False,
            )
        )


if __name__ == "__main__":
    main()

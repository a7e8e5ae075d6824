"""CLI entrypoint: run an analysis in-process, drive one job through the worker, or serve the API."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Any, Dict

from core import AnalysisRequest, NarrativeEvent, NarrativeEventType, PartialSegment, ProgressUpdate
from pipeline import PipelineListener
from utils.logger import console, setup_package_logging
from webapp.runtime import build_pipeline, get_job_service, get_worker


class ConsoleListener(PipelineListener):
    """Renders a run on the terminal."""

    def __init__(self, show_narrative: bool = True) -> None:
        self.show_narrative = show_narrative
        self._in_text = False

    def _end_text(self) -> None:
        if self._in_text:
            console.print()
            self._in_text = False

    def on_progress(self, update: ProgressUpdate) -> None:
        self._end_text()
        phase = update.extra.get("phase") or ""
        console.print(f"[cyan]{update.label}[/cyan] {update.percent:5.1f}%  [dim]{phase}[/dim]")

    def on_partial_result(self, segment: PartialSegment, data: Dict[str, Any]) -> None:
        self._end_text()
        console.print(f"[green]partial[/green] {segment.value}")

    def on_narrative(self, event: NarrativeEvent) -> None:
        if not self.show_narrative:
            return
        if event.type == NarrativeEventType.TEXT_CHUNK:
            console.print(event.content, end="", markup=False, highlight=False)
            self._in_text = True
            return
        self._end_text()
        if event.type == NarrativeEventType.INSIGHT_CARD:
            body = (event.data or {}).get("body", "")
            console.print(f"[bold magenta]* {event.content}[/bold magenta] {body}")
        elif event.type in (NarrativeEventType.STATUS_UPDATE, NarrativeEventType.TRANSITION):
            console.print(f"[italic]{event.content}[/italic]")


async def _analyze(request: AnalysisRequest, show_narrative: bool) -> Dict[str, Any]:
    pipeline = build_pipeline()
    try:
        result = await pipeline.run(request, listener=ConsoleListener(show_narrative=show_narrative))
    finally:
        await pipeline.aclose()
    return result.model_dump(mode="json")


def main() -> None:
    parser = argparse.ArgumentParser(description="Website intelligence CLI")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("analyze", "job"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--url", required=True)
        cmd.add_argument("--user-id", default=None)
        cmd.add_argument("--session-id", default=None)
    sub.choices["analyze"].add_argument("--quiet-narrative", action="store_true")

    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    setup_package_logging(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    if args.command == "serve":
        import uvicorn

        uvicorn.run("webapp.app:app", host=args.host, port=int(args.port))
        return

    if not (args.user_id or args.session_id):
        parser.error("--user-id or --session-id is required")
    request = AnalysisRequest(url=args.url, user_id=args.user_id, session_id=args.session_id)

    if args.command == "analyze":
        payload = asyncio.run(_analyze(request, show_narrative=not args.quiet_narrative))
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if args.command == "job":
        service = get_job_service()
        job_id = service.enqueue(request)
        status = get_worker().run_next()
        print(
            json.dumps(
                {
                    "job_id": job_id,
                    "status": status.model_dump(mode="json") if status else None,
                    "events": len(service.list_events(job_id)),
                },
                ensure_ascii=False,
                indent=2,
            )
        )
        return


if __name__ == "__main__":
    main()

"""JSON-lines transport for the router.

stdin:  {"id": 1, "type": "CAPTURE", "payload": {"id": "...", "interval": "1h", "timestamp": 1700000000000}}
stdout: {"id": 1, "result": {...}}  and  {"type": "STATUS_UPDATE", "payload": {...}}
"""

import argparse
import asyncio
import json
import logging
import sys

from snapmaster import config
from snapmaster.session import ChartSession

logger = logging.getLogger(__name__)


def emit(obj: dict):
    print(json.dumps(obj, ensure_ascii=False), flush=True)


async def handle_line(router, line: str) -> dict | None:
    line = line.strip()
    if not line:
        return None
    try:
        req = json.loads(line)
        if not isinstance(req, dict):
            raise ValueError("request must be a JSON object")
    except ValueError as e:
        return {"error": f"invalid request: {e}"}

    req_id = req.get("id")
    try:
        res = await router.dispatch(req)
    except Exception as e:
        logger.exception("dispatch failed")
        return {"id": req_id, "error": str(e)}
    if res is None:
        return {"id": req_id, "error": f"unknown type: {req.get('type')}"}
    return {"id": req_id, "result": res}


async def stdin_lines():
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            return
        yield line


def spawn(tasks: set, coro) -> asyncio.Task:
    """終わったタスクは集合から外す（長時間稼働でも溜まらない）。"""
    task = asyncio.create_task(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return task


async def serve(router, lines, out=emit):
    """行ごとにタスク化（CAPTURE の多重実行ガードが効くように）。"""

    async def _one(line):
        reply = await handle_line(router, line)
        if reply is not None:
            out(reply)

    tasks = set()
    async for line in lines:
        spawn(tasks, _one(line))
    if tasks:
        await asyncio.gather(*tasks)


async def main(argv=None):
    ap = argparse.ArgumentParser(description="TradingView snapshot server (JSON lines on stdin/stdout)")
    ap.add_argument("--url", default=config.CHART_URL)
    ap.add_argument("--headed", action="store_true", help="show the browser window")
    ap.add_argument("--output-dir", default=config.OUTPUT_DIR)
    ap.add_argument("--stamp", action="store_true", default=config.STAMP)
    ap.add_argument("--locale", default=config.LOCALE)
    ns = ap.parse_args(argv)

    config.configure_logging()
    async with ChartSession(
        url=ns.url,
        headless=config.HEADLESS and not ns.headed,
        output_dir=ns.output_dir,
        stamp=ns.stamp,
        locale=ns.locale,
    ) as session:
        session.broadcaster.subscribe(emit)
        await serve(session.router, stdin_lines())


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()

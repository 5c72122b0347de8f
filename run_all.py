# run_all.py
"""
Local dev launcher: Redis, the arq send worker and the FastAPI app in one
terminal, each process's output prefixed with its name.

    python run_all.py            # everything
    python run_all.py --no-redis # Redis already running elsewhere
"""

import argparse
import asyncio
import sys


def commands(with_redis: bool) -> dict[str, list[str]]:
    procs: dict[str, list[str]] = {}
    if with_redis:
        procs["REDIS"] = ["redis-server"]
    # arq wants the dotted path of the WorkerSettings class itself
    procs["ARQ"] = [sys.executable, "-m", "arq", "dukabot.infrastructure.queue.arq_settings.WorkerSettings"]
    procs["APP"] = [
        sys.executable, "-m", "uvicorn", "dukabot.main:app",
        "--reload", "--host", "0.0.0.0", "--port", "8000",
    ]
    return procs


async def stream(name: str, cmd: list[str]) -> int:
    print(f"▶ Starting {name}: {' '.join(cmd)}")
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    assert process.stdout is not None
    async for line in process.stdout:
        print(f"[{name}] {line.decode(errors='replace').rstrip()}")
    code = await process.wait()
    print(f"■ {name} exited with {code}")
    return code


async def main(with_redis: bool) -> None:
    await asyncio.gather(*(stream(name, cmd) for name, cmd in commands(with_redis).items()))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--no-redis", action="store_true", help="do not start a local redis-server")
    args = parser.parse_args()
    try:
        asyncio.run(main(with_redis=not args.no_redis))
    except KeyboardInterrupt:
        print("Shutting down...")

#!/usr/bin/env python3
"""
Main entry point for the interview orchestrator.
Allows running the package with: python -m autointerview <command> [--flag=value ...]

Commands:
    start   --name=NAME --email=EMAIL --role=ROLE [--mode=MODE]
    status  --email=EMAIL --role=ROLE
    reap
"""
import sys
import asyncio
from typing import Dict, List

from .config import get_config, TRANSPORT_MODES
from .utils import setup_logging
from . import InterviewOrchestrator, ConfigurationError, AlreadyAttempted


def parse_flags(args: List[str]) -> Dict[str, str]:
    """Collect --key=value flags; bare --flag becomes "true"."""
    flags = {}
    for arg in args:
        if not arg.startswith("--"):
            continue
        key, _, value = arg[2:].partition("=")
        flags[key] = value if value else "true"
    return flags


def _require(flags: Dict[str, str], *names: str) -> None:
    missing = [n for n in names if not flags.get(n)]
    if missing:
        print(f"❌ Missing {', '.join('--' + n for n in missing)}")
        print(__doc__)
        sys.exit(2)


async def run_start(orchestrator: InterviewOrchestrator, flags: Dict[str, str]) -> int:
    try:
        info = await orchestrator.start_interview(flags["name"], flags["email"], flags["role"])
    except ConfigurationError as e:
        print(f"❌ Configuration Error: {e}")
        return 1
    except AlreadyAttempted as e:
        print(f"🚫 {e.message or e}")
        return 1

    print(f"✅ Interview started: {info['session_id']}")
    print(f"🔗 Join URL: {info['join_url']}")
    print(f"📡 Mode: {info['transport_mode']}")
    print(f"   {info['instructions']}")

    orchestrator.reaper.start()
    session = await orchestrator.wait_for(info["session_id"])
    await orchestrator.reaper.stop()

    print(f"🏁 Session finished: {session.state.value} ({len(session.responses)} responses)")
    if session.evaluation:
        score = session.evaluation.score if session.evaluation.score is not None else "n/a"
        print(f"📊 Score: {score} - {session.evaluation.summary}")
    return 0


def main():
    """Command-line interface for the interview orchestrator."""
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(__doc__)
        sys.exit(0)

    command = sys.argv[1]
    flags = parse_flags(sys.argv[2:])

    config = get_config()
    if "mode" in flags:
        if flags["mode"] not in TRANSPORT_MODES:
            print(f"❌ Invalid mode. Use one of: {', '.join(TRANSPORT_MODES)}")
            sys.exit(2)
        config.transport_mode = flags["mode"]
    if "data-dir" in flags:
        config.data_dir = flags["data-dir"]

    log_file = setup_logging(config.log_file, config.log_level)
    print(f"📝 Logging to {log_file}")

    orchestrator = InterviewOrchestrator(config)

    if command == "start":
        _require(flags, "name", "email", "role")
        sys.exit(asyncio.run(run_start(orchestrator, flags)))
    elif command == "status":
        _require(flags, "email", "role")
        report = orchestrator.get_status(flags["email"], flags["role"])
        print(f"📋 Status: {report['status']}")
        print(f"   {report['message']}")
    elif command == "reap":
        handled = asyncio.run(orchestrator.reap())
        print(f"🧹 Abandoned {len(handled)} stale session(s)")
    else:
        print(f"❌ Unknown command: {command}")
        print(__doc__)
        sys.exit(2)


if __name__ == "__main__":
    main()

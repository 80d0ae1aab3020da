#!/usr/bin/env python3
"""
Demo Runner Script

Runs one booking turn through the CallRelay dispatcher against the real
providers configured in the environment (.env or exported API keys).

This script:
1. Builds a dispatch request with a bookAppointment tool
2. Dispatches it with provider failover
3. Executes proposed tool calls with a local stub executor
4. Reconciles the tool results into a final reply
5. Prints the reply and the provider health afterwards

Usage:
    python scripts/run_demo.py                               # Default utterance
    python scripts/run_demo.py --message "what are your hours?"
    python scripts/run_demo.py --show-status                 # Only print provider status
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from callrelay.config import configure_logging, get_settings
from callrelay.dispatcher import get_orchestrator, run_turn
from callrelay.errors import AllProvidersFailedError
from callrelay.schemas import DispatchRequest, ParameterSchema, ToolDeclaration

SYSTEM_PROMPT = (
    "You are the phone receptionist for Luna Salon. Keep replies under two "
    "sentences. Use bookAppointment to book; confirm the time afterwards."
)

BOOK_APPOINTMENT = ToolDeclaration(
    name="bookAppointment",
    description="Book an appointment for the caller",
    parameters=ParameterSchema(
        type="object",
        properties={
            "date": ParameterSchema(type="string", description="Date, YYYY-MM-DD"),
            "time": ParameterSchema(type="string", description="Time, HH:MM (24h)"),
            "service": ParameterSchema(type="string", description="Requested service"),
        },
        required=["time"],
    ),
)


async def stub_executor(name: str, args: dict[str, Any], context: Any) -> Any:
    """Pretend to execute a tool and report what was done."""
    print(f"  -> executing {name}({args})")
    if name == "bookAppointment":
        return {"success": True, "confirmation": "LUNA-1042", **args}
    return {"error": f"Unknown tool: {name}"}


def print_status() -> None:
    """Print provider availability as seen by the health tracker."""
    print("\nProvider status:")
    for name, info in get_orchestrator().get_provider_status().items():
        model = info["model"] or "not configured"
        print(f"  {name:<8} {info['status']:<13} {model}")


async def run_demo(message: str) -> int:
    """Run one turn and print the outcome. Returns a process exit code."""
    request = DispatchRequest(
        user_message=message,
        system_prompt=SYSTEM_PROMPT,
        tools=[BOOK_APPOINTMENT],
    )

    print(f"\nCaller: {message}")
    try:
        outcome = await run_turn(get_orchestrator(), request, stub_executor)
    except AllProvidersFailedError as e:
        print(f"\nERROR: {e}")
        for attempt in e.attempts:
            print(f"  {attempt.provider:<8} {attempt.outcome:<13} {attempt.error or ''}")
        return 1

    print(f"Agent ({outcome.provider}): {outcome.text}")
    if outcome.tool_calls:
        print(f"Tools executed: {', '.join(t.call.name for t in outcome.tool_calls)}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Run one CallRelay dispatch turn")
    parser.add_argument(
        "--message",
        default="book me tomorrow at 2pm",
        help="Caller utterance (default: 'book me tomorrow at 2pm')",
    )
    parser.add_argument(
        "--show-status",
        action="store_true",
        help="Only print provider status and exit",
    )

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)

    print("=" * 60)
    print("CallRelay Demo Runner")
    print("=" * 60)
    print(f"Provider order: {', '.join(settings.provider_order)}")

    if args.show_status:
        print_status()
        sys.exit(0)

    exit_code = asyncio.run(run_demo(args.message))
    print_status()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

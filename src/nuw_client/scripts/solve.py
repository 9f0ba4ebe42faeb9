#!/usr/bin/env python3
"""
Fetch and solve a challenge from a node, printing the solution.

Exit code:
  0 = Challenge solved (or capabilities listed)
  1 = Challenge could not be fetched or solved

Typical usage:
  nuw-solve --node-url http://127.0.0.1:8545 --type signature_batch
  nuw-solve --type legacy --max-attempts 20000
  nuw-solve --capabilities
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from typing import Any

from nuw_client.core.errors import ChallengeError, RpcError
from nuw_client.core.settings import settings
from nuw_client.schemas.challenge import NuwChallengeType, dump_nuw_solution
from nuw_client.services.challenge import ChallengeService
from nuw_client.services.nuw import NuwChallengeService, fee_discount_for
from nuw_client.services.pow import PowSolver
from nuw_client.services.rpc import RpcClient

LEGACY_TYPE = "legacy"
BEST_TYPE = "best"

logger = logging.getLogger("nuw_client.solve")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nuw-solve",
        description="Fetch a challenge from a node and solve it.",
    )
    parser.add_argument("--node-url", default=settings.node_url, help="Node base URL")
    parser.add_argument(
        "--type",
        dest="challenge_type",
        default=BEST_TYPE,
        choices=[LEGACY_TYPE, BEST_TYPE, *(t.value for t in NuwChallengeType)],
        help="Preferred NUW type, 'best' for the largest discount, or 'legacy' PoW",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=settings.pow_max_attempts,
        help="Upper bound on Argon2 evaluations",
    )
    parser.add_argument(
        "--capabilities",
        action="store_true",
        help="List the challenge types this client can solve and exit",
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    return parser


def describe_capabilities(service: NuwChallengeService) -> list[dict[str, Any]]:
    """Return available types with the discount each earns."""
    return [
        {"challenge_type": t.value, "fee_discount_percent": fee_discount_for(t)}
        for t in service.available_types()
    ]


async def run(args: argparse.Namespace) -> dict[str, Any] | list[dict[str, Any]]:
    async with RpcClient() as rpc:
        solver = PowSolver(max_attempts=args.max_attempts)
        nuw_service = NuwChallengeService(rpc=rpc, pow_solver=solver)

        if args.capabilities:
            return describe_capabilities(nuw_service)

        if args.challenge_type == LEGACY_TYPE:
            solved = await ChallengeService(rpc=rpc, solver=solver).get_solved_challenge(
                args.node_url
            )
            return solved.model_dump(mode="json")

        preferred = (
            nuw_service.best_available_type()
            if args.challenge_type == BEST_TYPE
            else NuwChallengeType(args.challenge_type)
        )
        solution = await nuw_service.get_solved_challenge(args.node_url, preferred)
        return dump_nuw_solution(solution)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
    )

    try:
        output = asyncio.run(run(args))
    except ChallengeError as exc:
        logger.error("Challenge failed [%s]: %s", exc.code.value, exc)
        return 1
    except RpcError as exc:
        logger.error("RPC failed: %s", exc)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

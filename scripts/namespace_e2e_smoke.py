#!/usr/bin/env python3
"""Manual E2E smoke test for the Namespace provider.

Validates the full lifecycle against a real Namespace account:
  1. Resolves credentials (config, NSC_TOKEN, or NSC_TOKEN_FILE)
  2. Creates an instance
  3. Runs a command with cwd + env through the CommandService
  4. Describes the instance by id
  5. Finds the instance in the list
  6. Destroys the instance

Usage:
    export NSC_TOKEN_FILE=~/.ns/token.json   # or NSC_TOKEN=...

    python3 scripts/namespace_e2e_smoke.py
    python3 scripts/namespace_e2e_smoke.py --image alpine --keep

Output:
    Structured log to stdout (tokens redacted). Summary at the end.
    Exit code 0 on success, 1 on failure.
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from namespace_sandbox import (
    CreateSandboxOptions,
    NamespaceConfig,
    NamespaceError,
    NamespaceProvider,
    RunCommandOptions,
)
from namespace_sandbox.observability import configure_logging, get_logger

log = get_logger("namespace_e2e")


class SmokeTestRunner:
    """Orchestrates E2E smoke test steps."""

    def __init__(
        self,
        provider: NamespaceProvider,
        config: NamespaceConfig,
        image: str,
        keep: bool = False,
    ):
        self.provider = provider
        self.config = config
        self.image = image
        self.keep = keep
        self.results: list[tuple[str, bool, str]] = []

    def _record(self, step: str, passed: bool, detail: str = "") -> None:
        self.results.append((step, passed, detail))
        log.info("smoke_step", step=step, passed=passed, detail=detail)

    async def run_all(self) -> bool:
        """Run all smoke test steps. Returns True if all passed."""
        try:
            created = await self.provider.create(
                self.config,
                CreateSandboxOptions(image=self.image, envs={"SMOKE": "1"}),
            )
        except NamespaceError as e:
            self._record("create", False, str(e))
            return False

        sandbox = created.sandbox
        self._record("create", True, sandbox.instance_id)

        try:
            await self._step_run_command(sandbox)
            await self._step_get_by_id(sandbox.instance_id)
            await self._step_list(sandbox.instance_id)
        finally:
            if self.keep:
                self._record("destroy", True, "skipped (--keep)")
            else:
                await self.provider.destroy(self.config, sandbox.instance_id)
                self._record("destroy", True)

        return all(passed for _, passed, _ in self.results)

    async def _step_run_command(self, sandbox) -> None:
        if not sandbox.command_service_endpoint:
            self._record("run_command", False, "no command service endpoint")
            return
        try:
            result = await self.provider.run_command(
                sandbox,
                'echo "$GREETING from $(pwd)"',
                RunCommandOptions(cwd="/tmp", env={"GREETING": "hello"}),
            )
        except NamespaceError as e:
            self._record("run_command", False, str(e))
            return
        expected = "hello from /tmp"
        self._record(
            "run_command",
            result.exit_code == 0 and result.stdout.strip() == expected,
            f"exit={result.exit_code} stdout={result.stdout.strip()!r} "
            f"duration_ms={result.duration_ms}",
        )

    async def _step_get_by_id(self, instance_id: str) -> None:
        try:
            found = await self.provider.get_by_id(self.config, instance_id)
        except NamespaceError as e:
            self._record("get_by_id", False, str(e))
            return
        self._record("get_by_id", found is not None and found.sandbox_id == instance_id)

    async def _step_list(self, instance_id: str) -> None:
        try:
            listed = await self.provider.list(self.config)
        except NamespaceError as e:
            self._record("list", False, str(e))
            return
        ids = [item.sandbox_id for item in listed]
        self._record("list", ids.count(instance_id) == 1, f"{len(ids)} instances")

    def summary(self) -> str:
        lines = ["", "Namespace smoke test summary:"]
        for step, passed, detail in self.results:
            status = "PASS" if passed else "FAIL"
            lines.append(f"  [{status}] {step}" + (f": {detail}" if detail else ""))
        return "\n".join(lines)


async def _main(args: argparse.Namespace) -> int:
    config = NamespaceConfig(token_file=args.token_file or "")
    provider = NamespaceProvider()
    runner = SmokeTestRunner(provider, config, image=args.image, keep=args.keep)
    ok = await runner.run_all()
    print(runner.summary())
    return 0 if ok else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Namespace provider E2E smoke test")
    parser.add_argument("--image", default="ubuntu:latest", help="Container image")
    parser.add_argument("--token-file", help="Token file (defaults to NSC_TOKEN_FILE)")
    parser.add_argument("--keep", action="store_true", help="Skip destroy")
    parser.add_argument(
        "--log-format", choices=("json", "console"), default="console",
    )
    args = parser.parse_args()

    configure_logging(json_output=args.log_format == "json")
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())

"""
safety/attacks.py

Adversarial execution (Phase B) of a certified-so-far pattern.

CPython's regex engine holds the GIL for the whole match, so a runaway match
cannot be interrupted from a thread. Attacks therefore run in a disposable
child interpreter; each attack result is awaited against a deadline and, when
the deadline wins, the child is killed instead of being waited on.
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

_MAX_ATTACKS = 24
_TERMINATORS = "!\x00~"

# Executed with ``python -I -c``: reads one JSON job line, compiles, reports
# "ready", then prints the index of each attack once its search returns.
_ATTACK_WORKER = r"""
import json, re, sys
job = json.loads(sys.stdin.readline())
compiled = re.compile(job["pattern"], job["flags"])
sys.stdout.write("ready\n")
sys.stdout.flush()
for index, attack in enumerate(job["attacks"]):
    compiled.search(attack)
    sys.stdout.write("%d\n" % index)
    sys.stdout.flush()
"""


@dataclass(frozen=True)
class AttackOutcome:
    """Result of running the attack battery."""
    completed: int
    total: int
    timed_out: bool = False
    failed_attack: Optional[str] = None
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return not self.timed_out and self.error is None and self.completed == self.total


def build_attacks(seeds: Sequence[str], lengths: Sequence[int]) -> List[str]:
    """
    Build adversarial inputs from the pattern's own seed characters.

    Each seed is repeated, alone and alternating with the next seed, up to
    every configured length and followed by a terminator the pattern is
    unlikely to accept, forcing the engine to backtrack over the run.

    Parameters
    ----------
    seeds : Sequence[str]
        Characters taken from quantified constructs of the pattern.
    lengths : Sequence[int]
        Run lengths.

    Returns
    -------
    List[str]
        De-duplicated attack strings.
    """
    terminator = next((t for t in _TERMINATORS if t not in seeds), "!")
    attacks: List[str] = [""]
    for length in sorted(set(lengths)):
        for index, seed in enumerate(seeds):
            attacks.append(seed * length + terminator)
            if index + 1 < len(seeds):
                pair = seed + seeds[index + 1]
                attacks.append(pair * (length // 2) + terminator)
        attacks.append((seeds[0] + "\n") * (length // 2) + terminator)
    unique = list(dict.fromkeys(attacks))
    return unique[:_MAX_ATTACKS]


async def run_attacks(
    pattern: str,
    flags: int,
    attacks: Sequence[str],
    timeout_ms: int,
    startup_timeout_ms: int = 10000,
) -> AttackOutcome:
    """
    Race every attack against a per-attack deadline in a child interpreter.

    Parameters
    ----------
    pattern : str
        Regex source.
    flags : int
        ``re`` flags.
    attacks : Sequence[str]
        Inputs built by ``build_attacks``.
    timeout_ms : int
        Deadline for each attack search.
    startup_timeout_ms : int
        Deadline for the child to start and compile the pattern.

    Returns
    -------
    AttackOutcome
    """
    process = await asyncio.create_subprocess_exec(
        sys.executable, "-I", "-c", _ATTACK_WORKER,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    completed = 0
    try:
        job = {"pattern": pattern, "flags": flags, "attacks": list(attacks)}
        process.stdin.write(json.dumps(job).encode("utf-8") + b"\n")
        await process.stdin.drain()
        process.stdin.close()

        ready = await asyncio.wait_for(process.stdout.readline(), timeout=startup_timeout_ms / 1000)
        if ready.strip() != b"ready":
            stderr = await process.stderr.read()
            return AttackOutcome(0, len(attacks), error=_last_line(stderr) or "worker interpreter exited early")

        for attack in attacks:
            try:
                line = await asyncio.wait_for(process.stdout.readline(), timeout=timeout_ms / 1000)
            except asyncio.TimeoutError:
                logger.info(
                    "Attack %d/%d (%d chars) exceeded %d ms for %r",
                    completed + 1, len(attacks), len(attack), timeout_ms, pattern,
                )
                return AttackOutcome(completed, len(attacks), timed_out=True, failed_attack=attack)
            if not line:
                stderr = await process.stderr.read()
                return AttackOutcome(
                    completed, len(attacks), failed_attack=attack,
                    error=_last_line(stderr) or "worker interpreter crashed",
                )
            completed += 1
        return AttackOutcome(completed, len(attacks))
    except asyncio.TimeoutError:
        return AttackOutcome(0, len(attacks), error="worker interpreter did not start in time")
    finally:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                logger.debug("Worker interpreter already exited")
        await process.wait()


def _last_line(stderr: bytes) -> str:
    lines = [line for line in stderr.decode("utf-8", "replace").splitlines() if line.strip()]
    return lines[-1] if lines else ""

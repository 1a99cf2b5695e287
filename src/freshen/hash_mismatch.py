"""Parser for the fixed-output derivation hash mismatch diagnostic."""

from __future__ import annotations

import re
from dataclasses import dataclass

from freshen.errors import HashMismatchParseError

MISMATCH_MARKER = "hash mismatch in fixed-output derivation"

# Match the tail of the line; nix prefixes these with indentation and,
# under `-L`, with the derivation name. The last key on the line wins.
SPECIFIED_PATTERN = re.compile(r".*specified:\s*(\S.*?)\s*$")
GOT_PATTERN = re.compile(r".*got:\s*(\S.*?)\s*$")


@dataclass(frozen=True, slots=True)
class HashMismatch:
    specified: str
    got: str

    def formatted(self, drv_path: str = "/nix/store/unknown.drv") -> str:
        """Render the mismatch in the layout nix prints it."""
        return (
            f"error: {MISMATCH_MARKER} '{drv_path}':\n"
            f"         specified: {self.specified}\n"
            f"            got:    {self.got}\n"
        )


def find_hash_mismatch(build_log: str) -> HashMismatch:
    lines = build_log.splitlines()
    marker_index = next(
        (index for index, line in enumerate(lines) if MISMATCH_MARKER in line),
        None,
    )
    if marker_index is None:
        raise HashMismatchParseError(
            "No hash mismatch message found in build output.",
            hint="The probe build failed for a reason other than a fixed-output hash mismatch.",
            context={"tail": _tail(lines)},
        )

    following = lines[marker_index + 1 : marker_index + 3]
    if len(following) < 2:
        raise HashMismatchParseError(
            "Hash mismatch message is truncated.",
            context={"tail": _tail(lines)},
        )

    specified_match = SPECIFIED_PATTERN.match(following[0])
    got_match = GOT_PATTERN.match(following[1])
    if specified_match is None or got_match is None:
        raise HashMismatchParseError(
            "Hash mismatch message has an unexpected layout.",
            hint="Expected `specified:` and `got:` lines after the mismatch marker.",
            context={"specified_line": following[0], "got_line": following[1]},
        )
    return HashMismatch(specified=specified_match.group(1), got=got_match.group(1))


def _tail(lines: list[str], count: int = 5) -> str:
    return "\n".join(lines[-count:])

"""Encode, decode and resolve Claude Code project directory names."""

import itertools
import logging
import os
import stat

logger = logging.getLogger(__name__)

# Characters Claude Code collapses into "-" when naming a project directory
ENCODED_CHARS = ("/", "\\", ".", " ")
# Candidate joiners tried when re-assembling a path component
JOINERS = ("-", ".", " ")
# Max number of dash-separated segments folded into one path component
MAX_GROUP_SIZE = 6
# Hard cap on filesystem probes for a single resolve_path call
MAX_PROBES = 20_000


def encode_path(path: str) -> str:
    """Encode a filesystem path to a Claude project directory name.

    /home/wiz/my.app → -home-wiz-my-app
    """
    if not path:
        return ""
    encoded = path
    for ch in ENCODED_CHARS:
        encoded = encoded.replace(ch, "-")
    return encoded


def decode_path(encoded: str) -> str:
    """Naively decode a project directory name, treating every dash as a separator.

    -home-wiz-AI-LLM → /home/wiz/AI/LLM
    """
    if not encoded:
        return ""
    return encoded.replace("-", "/")


def extract_project_name(path: str) -> str:
    """Get the last path segment as the project display name.

    /home/wiz/AI/LLM → LLM
    """
    if not path:
        return ""
    stripped = path.rstrip("/\\")
    if not stripped:
        return path
    return stripped.replace("\\", "/").rsplit("/", 1)[-1]


def resolve_path(encoded: str) -> tuple[str, bool]:
    """Recover the real filesystem path behind an encoded project name.

    The encoding is lossy: "/", "." and " " all became "-", so the only way to
    tell them apart is to ask the filesystem. Candidate prefixes are expanded
    breadth-first by component count, folding 1..MAX_GROUP_SIZE segments into
    each component with every combination of JOINERS. Only prefixes that exist
    as directories are expanded further. The first complete path that exists
    wins, which makes the shortest (fewest components) match the tie-break.

    Returns (path, True) on a verified match, otherwise the naive decoding
    with False.
    """
    if not encoded:
        return "", False

    naive = decode_path(encoded)
    segments = encoded.split("-")
    head, rest = segments[0], segments[1:]
    root = os.sep if head == "" else head + os.sep

    if not any(rest):
        return naive, _probe(root, want_dir=True)

    probes = 0
    seen: set[tuple[str, int]] = set()
    frontier: list[tuple[str, int]] = [(root, 0)]
    while frontier:
        next_frontier = []
        for prefix, index in frontier:
            max_size = min(MAX_GROUP_SIZE, len(rest) - index)
            for size in range(1, max_size + 1):
                end = index + size
                is_final = end == len(rest)
                for component in _candidate_components(rest[index:end]):
                    probes += 1
                    if probes > MAX_PROBES:
                        logger.debug("Gave up resolving %s after %d probes", encoded, MAX_PROBES)
                        return naive, False
                    candidate = os.path.join(prefix, component)
                    if is_final:
                        if _probe(candidate, want_dir=False):
                            return candidate, True
                    elif (candidate, end) not in seen and _probe(candidate, want_dir=True):
                        seen.add((candidate, end))
                        next_frontier.append((candidate, end))
        frontier = next_frontier

    return naive, False


def _candidate_components(group: list[str]) -> list[str]:
    """All ways of re-joining a run of segments into a single path component."""
    if len(group) == 1:
        candidates = [group[0]]
    else:
        candidates = []
        for joiners in itertools.product(JOINERS, repeat=len(group) - 1):
            parts = [group[0]]
            for joiner, segment in zip(joiners, group[1:]):
                parts.append(joiner)
                parts.append(segment)
            candidates.append("".join(parts))
    return [c for c in candidates if c not in ("", ".", "..")]


def _probe(path: str, want_dir: bool) -> bool:
    """Check a candidate on disk; any OSError counts as "does not exist"."""
    try:
        st = os.stat(path)
    except (OSError, ValueError):
        return False
    if want_dir:
        return stat.S_ISDIR(st.st_mode)
    return True

"""PEM block repair for certificates and keys entered through a UI.

Single-line text fields turn the newlines of a PEM block into spaces.
The TLS layer rejects that, so the body of every block is rewritten
back to one base64 line per space run. Header and footer lines are left
exactly as they are.
"""

import re
from typing import Optional


PEM_BLOCK_PATTERN = re.compile(
    r"(-----BEGIN [A-Z ]+-----)([\s\S]*?)(-----END [A-Z ]+-----)"
)

SPACE_RUN_PATTERN = re.compile(r" +")


def _rewrite_block(match: "re.Match") -> str:
    header, body, footer = match.groups()
    body = SPACE_RUN_PATTERN.sub("\n", body)
    return f"{header}{body}{footer}"


def format_pem(pem: Optional[str]) -> Optional[str]:
    """
    Restore newlines inside every PEM block of a text blob.

    Args:
        pem: PEM text, possibly with newlines collapsed to spaces

    Returns:
        The repaired text, or the input unchanged if it is empty or
        holds no PEM block
    """
    if not pem:
        return pem
    return PEM_BLOCK_PATTERN.sub(_rewrite_block, pem)

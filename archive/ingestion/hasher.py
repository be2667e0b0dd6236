import asyncio
import hashlib


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


async def compute_fingerprint(data: bytes) -> str:
    """Lowercase hex SHA-256 of ``data``, computed off the event loop."""
    return await asyncio.to_thread(_sha256_hex, data)

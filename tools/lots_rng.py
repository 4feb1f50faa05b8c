"""
TAILDRAW - Random Sources

Stateful 32-bit random sources for the draw engine.

Provably fair scheme (ProvablyFairSource):
    Server generates server_seed_hash = SHA-256(server_seed) and publishes it.
    Client provides client_seed (or it's auto-generated).
    For every value the engine asks for:
        combined = HMAC-SHA256(server_seed, client_seed + ":" + salt + ":" + nonce)
        value    = int(combined[:8], 16)
    After the draw, server_seed is revealed so anyone can replay the draw.

Other sources:
    EntropyMixSource  Hash chain over clock, block counter, previous value and salt
    SeededSource      random.Random(seed), for simulations
    ReplaySource      Fixed list of values, for audits and tests

Usage:
    from tools.lots_rng import ProvablyFairSource
    from sim_engine.lots import draw_lots

    source = ProvablyFairSource()
    print(source.session.server_seed_hash)      # Publish before the draw
    result = draw_lots(7, 73, 1000, source)
    print(source.session.server_seed)           # Reveal after the draw
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import random
import struct
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from config.settings import DrawSettings
from sim_engine.lots.base import U32_MAX, RandomSource
from sim_engine.lots.errors import RandomSourceError

logger = logging.getLogger("taildraw.rng")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class SeedSession:
    """A provably fair seed session."""
    session_id: str
    server_seed: str          # Secret until the draw is published
    server_seed_hash: str     # SHA-256 of server_seed (shared upfront)
    client_seed: str          # Caller-provided or auto-generated
    nonce: int = 0            # Increments per value
    created_at: float = 0
    values: list = field(default_factory=list)

    def __post_init__(self):
        if not self.created_at:
            self.created_at = time.time()


@dataclass
class SourceValue:
    """One value handed to the engine, with what is needed to replay it."""
    nonce: int
    salt: int
    combined_hash: str
    value: int

    def verification_data(self) -> dict:
        return {
            "nonce": self.nonce,
            "salt": self.salt,
            "combined_hash": self.combined_hash,
            "value": self.value,
        }


# ═══════════════════════════════════════════════════════════════
# Provably Fair Source
# ═══════════════════════════════════════════════════════════════

class ProvablyFairSource(RandomSource):
    """HMAC-SHA256 source with a committed server seed."""

    def __init__(self, session: SeedSession = None, client_seed: str = None,
                 keep_history: bool = True):
        self.session = session or self.new_session(client_seed)
        self.keep_history = keep_history

    @staticmethod
    def new_session(client_seed: str = None) -> SeedSession:
        """Create a session with a fresh server seed."""
        server_seed = os.urandom(32).hex()
        server_seed_hash = hashlib.sha256(server_seed.encode()).hexdigest()
        session_id = hashlib.sha256(
            f"{server_seed}:{time.time()}".encode()
        ).hexdigest()[:16]

        if not client_seed:
            client_seed = DrawSettings.CLIENT_SEED or os.urandom(16).hex()

        logger.debug(f"New seed session {session_id} (server hash {server_seed_hash[:12]}...)")

        return SeedSession(
            session_id=session_id,
            server_seed=server_seed,
            server_seed_hash=server_seed_hash,
            client_seed=client_seed,
        )

    @staticmethod
    def derive_hash(server_seed: str, client_seed: str, salt: int, nonce: int) -> str:
        """Compute HMAC-SHA256(server_seed, client_seed:salt:nonce)."""
        return hmac.new(
            server_seed.encode(),
            f"{client_seed}:{salt}:{nonce}".encode(),
            hashlib.sha256,
        ).hexdigest()

    @staticmethod
    def hash_to_u32(hex_hash: str, offset: int = 0) -> int:
        """First 8 hex characters as an unsigned 32-bit value."""
        return int(hex_hash[offset:offset + 8], 16)

    def next(self, salt: int) -> int:
        nonce = self.session.nonce
        self.session.nonce += 1

        combined = self.derive_hash(self.session.server_seed,
                                    self.session.client_seed, salt, nonce)
        value = self.hash_to_u32(combined)
        if self.keep_history:
            self.session.values.append(SourceValue(nonce, salt, combined, value))
        return value

    # ── Verification ──────────────────────────────────────────

    @staticmethod
    def verify_value(server_seed: str, client_seed: str, salt: int,
                     nonce: int, expected_hash: str) -> bool:
        """Check one recorded value against the revealed seeds."""
        computed = ProvablyFairSource.derive_hash(server_seed, client_seed, salt, nonce)
        return hmac.compare_digest(computed, expected_hash)

    @staticmethod
    def verify_server_seed(server_seed: str, expected_hash: str) -> bool:
        """Verify the server seed matches the hash shared before the draw."""
        computed = hashlib.sha256(server_seed.encode()).hexdigest()
        return hmac.compare_digest(computed, expected_hash)

    @classmethod
    def replay(cls, server_seed: str, client_seed: str, nonce: int = 0) -> "ProvablyFairSource":
        """Rebuild a source from revealed seeds, positioned at `nonce`."""
        session = SeedSession(
            session_id="replay",
            server_seed=server_seed,
            server_seed_hash=hashlib.sha256(server_seed.encode()).hexdigest(),
            client_seed=client_seed,
            nonce=nonce,
        )
        return cls(session=session)

    def public_info(self) -> dict:
        """What may be shared before the server seed is revealed."""
        return {
            "session_id": self.session.session_id,
            "server_seed_hash": self.session.server_seed_hash,
            "client_seed": self.session.client_seed,
            "nonce": self.session.nonce,
        }

    def session_audit_log(self, reveal: bool = False) -> dict:
        """Full audit log for the session."""
        log = {
            **self.public_info(),
            "total_values": len(self.session.values),
            "created_at": self.session.created_at,
            "values": [v.verification_data() for v in self.session.values],
            "verification_instructions": {
                "step_1": "Verify: SHA-256(server_seed) == server_seed_hash",
                "step_2": "For each value: HMAC-SHA256(server_seed, client_seed:salt:nonce) == combined_hash",
                "step_3": "value == int(combined_hash[:8], 16)",
                "step_4": "Re-run the draw with the same values and compare the tails",
            },
        }
        if reveal:
            log["server_seed"] = self.session.server_seed
        return log

    def to_audit_json(self, reveal: bool = False) -> str:
        return json.dumps(self.session_audit_log(reveal=reveal), indent=2)


# ═══════════════════════════════════════════════════════════════
# Other Sources
# ═══════════════════════════════════════════════════════════════

class EntropyMixSource(RandomSource):
    """Hash chain seeded by the environment.

    Each value mixes a millisecond timestamp, a block counter, the previous
    value and the salt into 32 bits, hashes its little-endian encoding with
    SHA-256 and keeps the first 4 bytes.
    """

    def __init__(self, clock: Callable[[], int] = None,
                 block_number: Callable[[], int] = None, previous: int = 0):
        self.clock = clock or (lambda: time.time_ns() // 1_000_000)
        self._blocks = 0
        self.block_number = block_number or self._next_block
        self.previous = previous & U32_MAX

    def _next_block(self) -> int:
        self._blocks += 1
        return self._blocks

    def next(self, salt: int) -> int:
        timestamp = self.clock() & U32_MAX
        block = self.block_number() & U32_MAX
        mixed = (timestamp ^ block | (self.previous + salt)) & U32_MAX
        digest = hashlib.sha256(struct.pack("<I", mixed)).digest()
        self.previous = struct.unpack("<I", digest[:4])[0]
        return self.previous


class SeededSource(RandomSource):
    """Deterministic source for simulations; salt is folded into each value."""

    def __init__(self, seed=42):
        self.seed = seed
        self._rng = random.Random(seed)

    def next(self, salt: int) -> int:
        return (self._rng.getrandbits(32) + salt) & U32_MAX


class ReplaySource(RandomSource):
    """Plays back a recorded list of values, ignoring the salt."""

    def __init__(self, values):
        self.values = list(values)
        self.position = 0

    def next(self, salt: int) -> int:
        if self.position >= len(self.values):
            raise RandomSourceError(
                f"Replay exhausted after {len(self.values)} values"
            )
        value = self.values[self.position]
        self.position += 1
        if not isinstance(value, int) or not 0 <= value <= U32_MAX:
            raise RandomSourceError(f"Replay value {value!r} is not a 32-bit integer")
        return value


class RecordingSource(RandomSource):
    """Wraps a source and keeps every value it hands out."""

    def __init__(self, inner: RandomSource):
        self.inner = inner
        self.values = []

    def next(self, salt: int) -> int:
        value = self.inner.next(salt)
        self.values.append(value)
        return value

    def replay(self) -> ReplaySource:
        return ReplaySource(self.values)


SOURCES = {
    "fair": ProvablyFairSource,
    "seeded": SeededSource,
    "entropy": EntropyMixSource,
}

SOURCE_TYPES = list(SOURCES.keys())


def get_source(kind: str, seed: Optional[str] = None,
               client_seed: Optional[str] = None) -> RandomSource:
    """Build a random source by name."""
    cls = SOURCES.get(kind.lower())
    if cls is None:
        raise ValueError(f"Unknown source type: {kind}. Available: {SOURCE_TYPES}")
    if cls is ProvablyFairSource:
        if seed:
            return ProvablyFairSource.replay(seed, client_seed or DrawSettings.CLIENT_SEED or "")
        return ProvablyFairSource(client_seed=client_seed)
    if cls is SeededSource:
        return SeededSource(seed if seed is not None else 42)
    if seed or client_seed:
        logger.warning("Entropy source ignores seed arguments")
    return EntropyMixSource()

# contact_scout/acquisition/chain.py
"""
Ordered fallback over acquisition strategies.

Strategies are tried in priority order. Each one is asked whether it applies
given the error of the previous *attempt*; inapplicable strategies are skipped
without touching that error. The first success wins. When nothing succeeds,
:class:`AcquisitionError` carries the last observed error so callers can
classify the failure from its text.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from aiohttp import ClientSession

from contact_scout.acquisition.base import Strategy
from contact_scout.acquisition.direct import DirectInsecureStrategy, DirectSecureStrategy
from contact_scout.acquisition.proxy import RemoteProxyInsecureStrategy, RemoteProxySecureStrategy
from contact_scout.config import ProcessorConfig
from contact_scout.errors import AcquisitionError, ContactScoutError
from contact_scout.logger import get_logger
from contact_scout.models import AcquisitionOutcome, AcquisitionResult

log = get_logger("acquisition.chain")

AttemptCallback = Callable[[Strategy, AcquisitionOutcome], None]


class AcquisitionChain:
    """Mutable while being built, read-only after :meth:`freeze`."""

    def __init__(self) -> None:
        self._strategies: List[Strategy] = []
        self._frozen = False

    def add_strategy(self, strategy: Strategy) -> AcquisitionChain:
        if self._frozen:
            raise RuntimeError("AcquisitionChain is frozen; strategies can only be added during construction")
        self._strategies.append(strategy)
        return self

    def freeze(self) -> AcquisitionChain:
        self._frozen = True
        return self

    @property
    def strategies(self) -> Tuple[Strategy, ...]:
        return tuple(self._strategies)

    def __len__(self) -> int:
        return len(self._strategies)

    async def execute(
        self,
        url: str,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> Tuple[AcquisitionResult, AcquisitionOutcome]:
        last_error: Optional[BaseException] = None

        for strategy in self._strategies:
            if not strategy.is_applicable(url, last_error):
                log.debug("%s: skipping %s", url, strategy.name)
                continue

            log.debug("%s: trying %s", url, strategy.name)
            try:
                result = await strategy.acquire(url)
            except (ContactScoutError, OSError, ValueError) as exc:
                last_error = exc
                outcome = AcquisitionOutcome(
                    success=False,
                    protocol=strategy.protocol,
                    method=strategy.method,
                    detail=str(exc),
                    error=exc,
                )
                log.debug("%s: %s failed: %s", url, strategy.name, exc)
                if on_attempt is not None:
                    on_attempt(strategy, outcome)
                continue

            outcome = AcquisitionOutcome(
                success=True,
                protocol=strategy.protocol,
                method=strategy.method,
                detail=f"Downloaded {result.size_bytes} bytes via {strategy.name}",
            )
            if on_attempt is not None:
                on_attempt(strategy, outcome)
            log.info("%s: acquired via %s (%d bytes)", url, strategy.name, result.size_bytes)
            return result, outcome

        raise AcquisitionError(url, last_error) from last_error


def default_chain(session: ClientSession, config: ProcessorConfig) -> AcquisitionChain:
    """Direct HTTPS → direct HTTP → remote proxy HTTPS → remote proxy HTTP."""
    return (
        AcquisitionChain()
        .add_strategy(DirectSecureStrategy(session, config))
        .add_strategy(DirectInsecureStrategy(session, config))
        .add_strategy(RemoteProxySecureStrategy(session, config))
        .add_strategy(RemoteProxyInsecureStrategy(session, config))
        .freeze()
    )


__all__ = ["AcquisitionChain", "AttemptCallback", "default_chain"]

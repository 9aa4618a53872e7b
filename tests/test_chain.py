# File: tests/test_chain.py
from __future__ import annotations

import pytest

from contact_scout.acquisition import AcquisitionChain, default_chain
from contact_scout.acquisition.base import error_text
from contact_scout.errors import AcquisitionError, DirectFetchError, RemoteProxyError
from contact_scout.models import AcquisitionMethod, Protocol


def _direct_error(reason="timeout", protocol="HTTPS"):
    return DirectFetchError(
        f"All {protocol} fetch attempts failed for https://acme.test ({reason}): boom",
        reason=reason,
        retryable=reason == "timeout",
    )


def _after(marker):
    return lambda prev: marker in error_text(prev)


@pytest.mark.asyncio()
async def test_first_success_short_circuits(fakes):
    ok = fakes.result("hello")
    first = fakes.Strategy("first", result=ok)
    second = fakes.Strategy("second", result=fakes.result("other"))
    chain = AcquisitionChain().add_strategy(first).add_strategy(second).freeze()

    result, outcome = await chain.execute("https://acme.test")

    assert result is ok
    assert outcome.success is True
    assert outcome.detail == "Downloaded 5 bytes via first"
    assert second.calls == []
    assert second.applicability_checks == []


@pytest.mark.asyncio()
async def test_fallback_passes_previous_error(fakes):
    err = _direct_error("timeout")
    first = fakes.Strategy("direct", error=err)
    second = fakes.Strategy(
        "proxy",
        result=fakes.result("via proxy", method=AcquisitionMethod.REMOTE_PROXY),
        applies_when=_after("fetch attempts failed"),
        method=AcquisitionMethod.REMOTE_PROXY,
    )
    chain = AcquisitionChain().add_strategy(first).add_strategy(second).freeze()

    attempts = []
    result, outcome = await chain.execute("https://acme.test", lambda s, o: attempts.append((s.name, o.success)))

    assert result.method is AcquisitionMethod.REMOTE_PROXY
    assert second.applicability_checks == [err]
    assert attempts == [("direct", False), ("proxy", True)]
    assert outcome.method is AcquisitionMethod.REMOTE_PROXY


@pytest.mark.asyncio()
async def test_inapplicable_strategy_is_never_called(fakes):
    # an http 404 must not trigger the plain HTTP retry
    err = _direct_error("http 404")
    secure = fakes.Strategy("direct https", error=err)
    insecure = fakes.Strategy(
        "direct http",
        result=fakes.result(),
        applies_when=lambda prev: prev is not None and "timeout" in error_text(prev),
        protocol=Protocol.HTTP,
    )
    proxy = fakes.Strategy(
        "proxy https",
        result=fakes.result("proxied", method=AcquisitionMethod.REMOTE_PROXY),
        applies_when=_after("fetch attempts failed"),
    )
    chain = AcquisitionChain().add_strategy(secure).add_strategy(insecure).add_strategy(proxy).freeze()

    result, _ = await chain.execute("https://acme.test")

    assert insecure.calls == []
    # the skipped strategy does not replace the last error
    assert proxy.applicability_checks == [err]
    assert result.content == "proxied"


@pytest.mark.asyncio()
async def test_exhaustion_carries_last_error(fakes):
    direct_err = _direct_error("timeout")
    proxy_err = RemoteProxyError("Remote proxy HTTPS download failed for https://acme.test: 502")
    chain = (
        AcquisitionChain()
        .add_strategy(fakes.Strategy("direct", error=direct_err))
        .add_strategy(fakes.Strategy("proxy", error=proxy_err, applies_when=_after("fetch attempts failed")))
        .add_strategy(fakes.Strategy("never", result=fakes.result(), applies_when=lambda prev: False))
        .freeze()
    )

    with pytest.raises(AcquisitionError) as info:
        await chain.execute("https://acme.test")

    assert info.value.last_error is proxy_err
    assert info.value.url == "https://acme.test"
    assert str(info.value) == str(proxy_err)


@pytest.mark.asyncio()
async def test_nothing_applicable(fakes):
    chain = AcquisitionChain().add_strategy(fakes.Strategy("never", applies_when=lambda prev: False)).freeze()
    with pytest.raises(AcquisitionError, match="All download strategies failed"):
        await chain.execute("https://acme.test")


def test_frozen_chain_rejects_new_strategies(fakes):
    chain = AcquisitionChain().add_strategy(fakes.Strategy("one")).freeze()
    with pytest.raises(RuntimeError):
        chain.add_strategy(fakes.Strategy("two"))
    assert len(chain) == 1


def test_default_chain_order(fast_config):
    chain = default_chain(None, fast_config)
    assert [s.name for s in chain.strategies] == [
        "Direct HTTPS",
        "Direct HTTP",
        "Remote proxy HTTPS",
        "Remote proxy HTTP",
    ]
    with pytest.raises(RuntimeError):
        chain.add_strategy(chain.strategies[0])

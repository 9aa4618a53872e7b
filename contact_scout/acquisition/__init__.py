"""Acquisition strategies and the fallback chain that orders them."""
from contact_scout.acquisition.base import BaseStrategy, Strategy
from contact_scout.acquisition.chain import AcquisitionChain, default_chain
from contact_scout.acquisition.direct import DirectInsecureStrategy, DirectSecureStrategy
from contact_scout.acquisition.proxy import RemoteProxyInsecureStrategy, RemoteProxySecureStrategy

__all__ = [
    "Strategy",
    "BaseStrategy",
    "AcquisitionChain",
    "default_chain",
    "DirectSecureStrategy",
    "DirectInsecureStrategy",
    "RemoteProxySecureStrategy",
    "RemoteProxyInsecureStrategy",
]

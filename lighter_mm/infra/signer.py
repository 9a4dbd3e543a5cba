import importlib
from abc import ABC, abstractmethod
from typing import Any, Dict


class TxSigner(ABC):
    """
    Podpisywanie i budowa transakcji Lightera (nonce, klucz API) - poza tym projektem.
    Zwraca gotowy tx_info (JSON) do wysłania przez /api/v1/sendTx.
    """

    @abstractmethod
    def sign_create_order(self, req: Dict[str, Any]) -> str: ...

    @abstractmethod
    def sign_cancel_all_orders(self, req: Dict[str, Any]) -> str: ...


def load_signer(path: str, **kwargs) -> TxSigner:
    """Ładuje signer z 'pakiet.modul:fabryka'; fabryka dostaje kwargs z konfiguracji."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"TX_SIGNER musi mieć format 'modul:fabryka', jest: {path!r}")
    factory = getattr(importlib.import_module(module_name), attr)
    signer = factory(**kwargs)
    if not isinstance(signer, TxSigner):
        raise TypeError(f"{path} nie zwrócił TxSigner")
    return signer

import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel, ValidationError

from lighter_mm.domain.dto import PricingParameters
from lighter_mm.domain.interfaces import ParameterSource


class _LimitOrders(BaseModel):
    delta_a: float
    delta_b: float


class AvellanedaFile(BaseModel):
    """Plik z parametrami Avellaneda-Stoikov; interesuje nas tylko sekcja limit_orders."""
    limit_orders: _LimitOrders


class FileParameterSource(ParameterSource):
    def __init__(self, path: str):
        self.path = Path(path)
        self.name = str(path)

    def read(self) -> bytes:
        return self.path.read_bytes()


def file_sources(paths: Sequence[str]) -> List[ParameterSource]:
    return [FileParameterSource(p) for p in paths]


class ParameterStore:
    """
    Ładuje delty wyceny z listy źródeł (kolejność = priorytet) i trzyma je w cache przez TTL.
    Brak parametrów to normalny wynik (None), nie błąd.
    """

    def __init__(
        self,
        sources: Sequence[ParameterSource],
        refresh_sec: float = 15 * 60.0,
        now_fn: Optional[Callable[[], float]] = None,
    ):
        self.sources = list(sources)
        self.refresh_sec = refresh_sec
        self._now = now_fn or time.monotonic
        self._lock = threading.Lock()
        self._params: Optional[PricingParameters] = None

    def load(self) -> Optional[PricingParameters]:
        with self._lock:
            cached = self._params
        if cached is not None and self._now() - cached.loaded_at < self.refresh_sec:
            return cached

        for source in self.sources:
            params = self._try_source(source)
            if params is None:
                continue
            logger.info(
                f"Załadowano parametry z {source.name} (delta_a={params.delta_ask:.6f} delta_b={params.delta_bid:.6f})"
            )
            with self._lock:
                self._params = params
            return params
        return None

    def _try_source(self, source: ParameterSource) -> Optional[PricingParameters]:
        try:
            data = source.read()
        except OSError:
            return None
        except Exception as e:
            logger.warning(f"Błąd odczytu parametrów z {source.name}: {e}")
            return None
        try:
            parsed = AvellanedaFile.model_validate_json(data)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Niepoprawny plik parametrów {source.name}: {e}")
            return None

        params = PricingParameters(
            delta_ask=parsed.limit_orders.delta_a,
            delta_bid=parsed.limit_orders.delta_b,
            loaded_at=self._now(),
        )
        if not params.is_valid():
            logger.warning(f"Plik parametrów {source.name} nie ma dodatnich delt, pomijam")
            return None
        return params

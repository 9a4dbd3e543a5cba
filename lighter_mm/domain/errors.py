class EngineError(Exception):
    """Ogólny błąd silnika market-makera."""


class StaleData(EngineError):
    """Cena mid jest starsza niż okno świeżości."""


class ConfigurationUnavailable(EngineError):
    """Parametry wyceny są wymagane, ale niedostępne."""


class SizingFailure(EngineError):
    """Wyliczony rozmiar zlecenia jest mniejszy niż jeden tick."""


class TransportFailure(EngineError):
    """Wywołanie giełdy nie powiodło się."""


class ExchangeValidationError(TransportFailure):
    """Nieprawidłowe dane wejściowe zlecenia."""


class ExchangeAuthError(TransportFailure):
    """Brak podpisu, błędny klucz albo brak uprawnień."""


class ExchangeRateLimitError(TransportFailure):
    """Przekroczony limit zapytań API."""


class ExchangeNetworkError(TransportFailure):
    """Błąd sieci/połączenia."""


class ExchangeOrderRejected(TransportFailure):
    """Zlecenie odrzucone przez giełdę."""


class StartupError(EngineError):
    """Błąd sekwencji startowej; zatrzymuje silnik."""

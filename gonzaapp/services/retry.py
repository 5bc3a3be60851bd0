"""Reintento con espera exponencial para lecturas de la base."""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Type, TypeVar

from gonzaapp.config import settings as app_settings

T = TypeVar("T")

logger = logging.getLogger(__name__)


class RetryExhaustedError(Exception):
    """Se agotaron los intentos."""


def with_retry(
    func: Callable[[], T],
    attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    exponential_base: float = 2.0,
    retryable: tuple[Type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Ejecuta ``func`` hasta ``attempts`` veces (por defecto 5), esperando
    ``initial_delay * exponential_base**n`` entre intentos.

    Raises:
        RetryExhaustedError: encadenada a la ultima excepcion.
    """
    attempts = attempts or app_settings.READ_RETRY_ATTEMPTS
    delay0 = app_settings.READ_RETRY_INITIAL_DELAY if initial_delay is None else initial_delay
    last_exc: Optional[Exception] = None

    for attempt in range(attempts):
        try:
            result = func()
            if attempt > 0:
                logger.info("Reintento exitoso en el intento %d", attempt + 1)
            return result
        except retryable as e:
            last_exc = e
            if attempt + 1 >= attempts:
                logger.error("Intentos agotados (%d)", attempts)
                break
            delay = delay0 * (exponential_base ** attempt)
            logger.warning("Intento %d/%d fallo: %s. Reintentando en %.2fs", attempt + 1, attempts, e, delay)
            sleep(delay)

    raise RetryExhaustedError(f"Fallo despues de {attempts} intentos") from last_exc

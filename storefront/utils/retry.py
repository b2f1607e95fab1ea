"""
Retry borné à backoff exponentiel plafonné, pour les appels sortants idempotents
(relecture du panier, completion Medusa). Les autres erreurs remontent immédiatement.
"""
import logging
import time
from typing import Callable, Tuple, Type, TypeVar

from storefront import config
from storefront.errors import CommerceUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

def backoff_delays(attempts: int, base_delay: float, max_delay: float):
    """Délais entre tentatives: base, 2*base, 4*base... plafonnés à max_delay."""
    return [min(max_delay, base_delay * (2 ** n)) for n in range(max(0, attempts - 1))]

def retry_transient(
    fn: Callable[..., T],
    *args,
    attempts: int = None,
    base_delay: float = None,
    max_delay: float = None,
    retry_on: Tuple[Type[BaseException], ...] = (CommerceUnavailableError,),
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> T:
    """
    Appelle fn(*args, **kwargs) et rejoue uniquement sur les erreurs transitoires.
    - attempts/base_delay/max_delay: par défaut RETRY_ATTEMPTS/RETRY_BASE_DELAY/RETRY_MAX_DELAY.
    - Après la dernière tentative, l'erreur d'origine est relevée telle quelle.
    """
    attempts = attempts or config.RETRY_ATTEMPTS
    delays = backoff_delays(
        attempts,
        config.RETRY_BASE_DELAY if base_delay is None else base_delay,
        config.RETRY_MAX_DELAY if max_delay is None else max_delay,
    )
    for attempt, delay in enumerate(delays + [None], start=1):
        try:
            return fn(*args, **kwargs)
        except retry_on as e:
            if delay is None:
                raise
            logger.warning("retry %s tentative %s/%s échouée (%s), nouvel essai dans %.2fs",
                           getattr(fn, "__name__", fn), attempt, attempts, e, delay)
            sleep(delay)

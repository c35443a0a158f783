"""
Exécution des appels bloquants (SDK Stripe, Supabase, SMTP) hors de la boucle d'événements.
"""
import asyncio
import functools
from typing import Any, Callable, Optional


async def run_blocking(fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None, **kwargs: Any) -> Any:
    """
    Exécute fn(*args, **kwargs) dans l'executor par défaut.
    - timeout: borne l'attente; lève asyncio.TimeoutError à l'échéance
      (le thread continue mais la requête n'attend plus).
    """
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
    if timeout is None:
        return await future
    return await asyncio.wait_for(future, timeout)

"""
Rate limit en memoria para endpoints sin autenticar (login / register).

Ventana deslizante por (identificador, ruta). Por proceso: detrás de varios
workers cada uno lleva su propio conteo.
"""
from collections import deque
from time import monotonic
from typing import Deque, Dict, Tuple

BUCKET: Dict[Tuple[str, str], Deque[float]] = {}

_last_sweep = 0.0


def _sweep(now: float, window_seconds: int) -> None:
    """Quita las claves sin intentos dentro de la ventana."""
    for key in [k for k, q in BUCKET.items() if not q or now - q[-1] >= window_seconds]:
        del BUCKET[key]


def allow(key: Tuple[str, str], limit: int = 5, window_seconds: int = 60) -> bool:
    """Devuelve True si se permite la acción y registra el intento.

    key: (identificador, ruta)
    """
    global _last_sweep
    now = monotonic()
    # Como mucho un barrido por ventana
    if now - _last_sweep >= window_seconds:
        _sweep(now, window_seconds)
        _last_sweep = now
    q = BUCKET.setdefault(key, deque())
    while q and now - q[0] >= window_seconds:
        q.popleft()
    if len(q) >= limit:
        return False
    q.append(now)
    return True


def reset() -> None:
    """Limpia el bucket (útil en tests)."""
    global _last_sweep
    BUCKET.clear()
    _last_sweep = 0.0

# core/store.py
"""
Key-tree document store.

Values live under forward-slash paths (``budgets/<id>/name``). Writing
``None`` or an empty mapping removes a node, lists are kept as index-keyed
children and come back as lists, and children are always returned ordered
by key. Every concrete store implements ``get`` and ``_write``; the rest of
the contract (multi-path update, push keys, equality queries and
subscriptions) is shared here.
"""
from __future__ import annotations
import copy
import logging
import secrets
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from budget_api.core.errors import StoreError

OnChange = Callable[[Any], None]

_FORBIDDEN_KEY_CHARS = set(".$#[]/")
_LEAF_TYPES = (str, int, float, bool)

# ------------------------------- Paths -----------------------------------
def split_path(path: str) -> List[str]:
    return [p for p in str(path).split("/") if p]

def normalize_path(path: str) -> str:
    parts = split_path(path)
    for p in parts:
        _check_key(p)
    return "/".join(parts)

def join_path(*parts: str) -> str:
    return "/".join(p for part in parts for p in split_path(part))

def ancestors(path: str) -> List[str]:
    parts = split_path(path)
    return ["/".join(parts[:i]) for i in range(1, len(parts))]

def related(a: str, b: str) -> bool:
    """True when both paths are equal or one contains the other."""
    if a == b or not a or not b:
        return True
    return a.startswith(b + "/") or b.startswith(a + "/")

def _check_key(key: str) -> None:
    if not key or _FORBIDDEN_KEY_CHARS & set(key):
        raise StoreError(f"Clave inválida: {key!r}")

# --------------------------- Value encoding ------------------------------
def normalize(value: Any) -> Any:
    """Lists become index-keyed mappings; None and empty containers vanish."""
    if isinstance(value, (list, tuple)):
        value = {str(i): v for i, v in enumerate(value)}
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            k = str(k)
            _check_key(k)
            nv = normalize(v)
            if nv is not None:
                out[k] = nv
        return out or None
    if value is None or isinstance(value, _LEAF_TYPES):
        return value
    raise StoreError(f"Tipo de valor no soportado: {type(value).__name__}")

def denormalize(value: Any) -> Any:
    if isinstance(value, dict):
        out = {k: denormalize(value[k]) for k in sorted(value)}
        if out and set(out) == {str(i) for i in range(len(out))}:
            return [out[str(i)] for i in range(len(out))]
        return out
    return value

def flatten(value: Any, prefix: str) -> Dict[str, Any]:
    """Leaf path -> scalar for a (not yet normalized) value written at ``prefix``."""
    leaves: Dict[str, Any] = {}

    def walk(v: Any, p: str) -> None:
        if isinstance(v, dict):
            for k, child in v.items():
                walk(child, f"{p}/{k}" if p else k)
        elif v is not None:
            leaves[p] = v

    walk(normalize(value), prefix)
    return leaves

def lookup(value: Any, parts: Iterable[str]) -> Any:
    node = value
    for p in parts:
        if isinstance(node, dict):
            node = node.get(p)
        elif isinstance(node, list) and p.isdigit() and int(p) < len(node):
            node = node[int(p)]
        else:
            return None
    return node

def _same(a: Any, b: Any) -> bool:
    return a == b and isinstance(a, bool) == isinstance(b, bool)

# ------------------------------ Push keys --------------------------------
PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

class PushKeyGenerator:
    """
    20-char keys: 8 chars of millisecond timestamp + 12 random chars, so keys
    sort in creation order. Keys made within the same millisecond bump the
    random suffix by one.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ts = -1
        self._last_rand: List[int] = []

    def __call__(self) -> str:
        with self._lock:
            now = int(self._clock() * 1000)
            if now == self._last_ts:
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_rand[i] += 1
            else:
                self._last_ts = now
                self._last_rand = [secrets.randbelow(64) for _ in range(12)]
            ts_chars = []
            t = now
            for _ in range(8):
                ts_chars.append(PUSH_CHARS[t % 64])
                t //= 64
            return "".join(reversed(ts_chars)) + "".join(PUSH_CHARS[r] for r in self._last_rand)

# ----------------------------- Subscriptions -----------------------------
class Subscription:
    """Handle returned by ``subscribe``; ``cancel()`` takes effect exactly once."""

    def __init__(self, on_cancel: Callable[[], None]):
        self._on_cancel = on_cancel
        self._lock = threading.Lock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> bool:
        with self._lock:
            if not self._active:
                return False
            self._active = False
        self._on_cancel()
        return True

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.cancel()

# ------------------------------ Base store -------------------------------
class BaseStore:
    def __init__(self):
        self.new_key = PushKeyGenerator()
        self._listeners: Dict[int, Tuple[str, OnChange]] = {}
        self._listeners_lock = threading.Lock()
        self._next_listener = 0

    # -- backend primitives --
    def get(self, path: str) -> Any:
        raise NotImplementedError

    def _write(self, changes: Dict[str, Any]) -> None:
        """Apply every ``path -> value`` replacement atomically."""
        raise NotImplementedError

    # -- shared contract --
    def set(self, path: str, value: Any) -> None:
        path = normalize_path(path)
        if not path and value is not None and not isinstance(value, dict):
            raise StoreError("La raíz solo admite un diccionario")
        self._write({path: value})
        self._notify([path])

    def update(self, path_map: Dict[str, Any]) -> None:
        changes = {normalize_path(p): v for p, v in path_map.items()}
        if not changes:
            return
        paths = list(changes)
        for i, a in enumerate(paths):
            for b in paths[i + 1:]:
                if related(a, b):
                    raise StoreError(f"Rutas superpuestas en una misma actualización: {a!r} y {b!r}")
        self._write(changes)
        self._notify(paths)

    def remove(self, path: str) -> None:
        self.set(path, None)

    def push(self, path: str, value: Any = None) -> str:
        key = self.new_key()
        if value is not None:
            self.set(join_path(path, key), value)
        return key

    def query(self, path: str, order_by_child: str, equal_to: Any) -> Dict[str, Any]:
        children = self.get(path)
        if isinstance(children, list):
            children = {str(i): v for i, v in enumerate(children)}
        if not isinstance(children, dict):
            return {}
        parts = split_path(order_by_child)
        return {
            key: child for key, child in children.items()
            if _same(lookup(child, parts), equal_to)
        }

    def subscribe(self, path: str, on_change: OnChange) -> Subscription:
        path = normalize_path(path)
        with self._listeners_lock:
            lid = self._next_listener
            self._next_listener += 1
            self._listeners[lid] = (path, on_change)
        subscription = Subscription(lambda: self._drop_listener(lid))
        self._deliver(lid, path, on_change)
        return subscription

    def listener_count(self) -> int:
        with self._listeners_lock:
            return len(self._listeners)

    def _drop_listener(self, lid: int) -> None:
        with self._listeners_lock:
            self._listeners.pop(lid, None)

    def _notify(self, changed: List[str]) -> None:
        with self._listeners_lock:
            targets = [
                (lid, path, cb) for lid, (path, cb) in self._listeners.items()
                if any(related(path, c) for c in changed)
            ]
        for lid, path, cb in targets:
            self._deliver(lid, path, cb)

    def _deliver(self, lid: int, path: str, cb: OnChange) -> None:
        with self._listeners_lock:
            if lid not in self._listeners:
                return
        try:
            cb(self.get(path))
        except Exception:
            logging.getLogger("uvicorn.error").exception("Falló el suscriptor en %r", path)

# ----------------------------- Memory store ------------------------------
class MemoryStore(BaseStore):
    """In-process tree. Used for development and by the test-suite."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        super().__init__()
        self._lock = threading.RLock()
        self._root: Dict[str, Any] = normalize(copy.deepcopy(data)) or {}

    def get(self, path: str) -> Any:
        with self._lock:
            node: Any = self._root
            for p in split_path(path):
                if not isinstance(node, dict) or p not in node:
                    return None
                node = node[p]
            return denormalize(copy.deepcopy(node))

    def _write(self, changes: Dict[str, Any]) -> None:
        # normalize everything first so a bad value aborts before any change
        prepared = [(split_path(p), normalize(copy.deepcopy(v))) for p, v in changes.items()]
        with self._lock:
            for parts, value in prepared:
                self._put(parts, value)

    def _put(self, parts: List[str], value: Any) -> None:
        if not parts:
            self._root = value or {}
            return
        node = self._root
        trail = []
        for p in parts[:-1]:
            child = node.get(p)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[p] = child
            trail.append((node, p))
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value
        for parent, key in reversed(trail):
            if parent[key]:
                break
            del parent[key]

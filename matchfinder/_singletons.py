# matchfinder/_singletons.py
from functools import lru_cache
from .contexts import LocalContextHost
from .coordinator import MatchCoordinator
from .handoff import make_handoff_store
from .messaging import MessageBus

@lru_cache(maxsize=1)
def get_message_bus():
    return MessageBus()

@lru_cache(maxsize=1)
def get_handoff_store():
    return make_handoff_store()

@lru_cache(maxsize=1)
def get_context_host():
    return LocalContextHost(get_message_bus(), get_handoff_store())

@lru_cache(maxsize=1)
def get_coordinator():
    # one coordinator per process; it serializes (or rejects) overlapping searches
    return MatchCoordinator(get_context_host(), get_message_bus(), get_handoff_store())

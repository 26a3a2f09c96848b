from .registry import Binding, Session, SessionRegistry, canonical_room

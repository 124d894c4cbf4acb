from burrow.session.models import Session
from burrow.session.remote import HttpSessionMirror, RemoteSessionStore
from burrow.session.store import SessionStore, safe_key

__all__ = ["HttpSessionMirror", "RemoteSessionStore", "Session", "SessionStore", "safe_key"]

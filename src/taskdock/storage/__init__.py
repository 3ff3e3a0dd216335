"""
On-device storage.

Components:
- medium.py: synchronous key-value media (SQLite, in-memory)
- events.py: change notifications shared by instances over one medium
- local_store.py: whole-collection persistence for every entity kind
"""

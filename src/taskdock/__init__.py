"""
taskdock: local-first task storage with background remote sync.

Subpackages:
- core: entities, ports (Protocols), application context
- storage: on-device key-value medium, change notifications, LocalStore
- sync: operation queue, remote HTTP adapter, sync worker, StorageManager facade
- cli: composition root and console entrypoint
"""

__version__ = "0.1.0"

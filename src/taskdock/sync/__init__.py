"""
Sync subsystem.

Components:
- operations.py: operation types, payloads, QueuedOperation
- queue.py: durable FIFO backlog of pending mutations
- wire.py: field-name translation between records and the HTTP wire format
- remote_store.py: HTTP adapter for the remote authoritative store
- worker.py: timer-driven queue drain + remote pull
- manager.py: StorageManager facade used by the rest of the app
"""

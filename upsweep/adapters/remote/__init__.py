from upsweep.adapters.remote.ssh import REMOTE_PREFIX_VAR, RemoteDispatcher

__all__ = ["REMOTE_PREFIX_VAR", "RemoteDispatcher"]

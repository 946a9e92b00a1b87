"""
Upstream providers.

``base.Provider`` is the interface the service router binds to;
``infura.Infura`` is the implementation used in production.
"""

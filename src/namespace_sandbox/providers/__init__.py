"""Sandbox provider implementations."""
from .namespace import NamespaceProvider, NamespaceSandbox
from .namespace_client import NamespaceClient

__all__ = ['NamespaceClient', 'NamespaceProvider', 'NamespaceSandbox']

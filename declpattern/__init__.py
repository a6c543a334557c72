"""Declarative handling of Kubernetes manifests: parsing, patching, ordering, applying and watching."""

__version__ = "0.1.0"
"""Manifest objects: parsing, editing, ordering and patching."""
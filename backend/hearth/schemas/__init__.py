# Schemas package init
"""Pydantic request and response models, one module per resource."""

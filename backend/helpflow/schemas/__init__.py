"""
HelpFlow Backend: API Schemas
==============================

Pydantic request/response models. Wire names are camelCase (the dashboard's
convention); Python attributes stay snake_case through alias generation.
"""

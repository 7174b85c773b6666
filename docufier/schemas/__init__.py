"""JSON Schemas bundled with Docufier."""

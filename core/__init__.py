"""Core modules for the OCR demo service: config, logging, errors, tensors."""

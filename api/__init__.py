"""HTTP routers for the OCR demo service."""

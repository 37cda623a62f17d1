"""Pydantic schemas for the document issuance engine."""

from internship_docs.schemas.documents import *

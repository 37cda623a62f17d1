"""Internship offer letter and completion certificate issuance."""

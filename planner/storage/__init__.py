"""Blob storage for submitted artifacts and tutor certificates."""

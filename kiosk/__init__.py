"""Kiosk loyalty-card and promotion management backend.

This package exposes the service, repository and model modules used by
the FastAPI application in `kiosk.main`.
"""

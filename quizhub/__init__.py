"""Application package for the challenge hub quiz backend.

This package exposes the grading, ledger and service modules used by the
FastAPI application. Individual modules contain the concrete
implementations and documentation.
"""

"""
Server modules for the Map of Us application.

This package contains the FastAPI router modules for the pages, the memory
API and authentication, plus the client for the hosted backend.
"""

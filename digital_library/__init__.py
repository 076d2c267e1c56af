"""Digital Library - core application package

This package contains the lending core shared by the console and the HTTP API:
- Domain models (book.py, user.py, loan.py)
- Storage contracts and backend adapters (repositories/)
- Catalog, membership and lending services (services/)
- Process bootstrap (library.py)
"""

__version__ = "1.0.0"

"""Study Hub: course study-group organizer.

The package exposes the service, repository and model modules used by
the FastAPI application in `studyhub.main`. Individual modules contain
the concrete implementations and documentation.
"""

"""SQLAlchemy persistence for the role and assignment stores."""

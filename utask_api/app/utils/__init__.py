"""Small presentation helpers used by the service layer."""

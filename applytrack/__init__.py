"""Job-application tracker API."""

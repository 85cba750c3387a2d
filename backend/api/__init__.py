"""Birthday CRM API server."""

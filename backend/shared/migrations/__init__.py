"""Schema migrations for the birthday CRM database."""

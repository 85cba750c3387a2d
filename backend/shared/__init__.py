"""Shared persistence layer: models, repositories, migrations, pool management."""

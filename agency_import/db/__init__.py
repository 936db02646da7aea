"""PostgreSQL access: connection, agency repository, batched inserts."""

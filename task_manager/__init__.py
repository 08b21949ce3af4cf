"""Task Manager API: per-user task lists behind JWT access/refresh token auth."""

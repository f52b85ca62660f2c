"""Cross-cutting services: role permissions, notifications, notice messages."""

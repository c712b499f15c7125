"""Log browser: list stored webhook logs and show a single one."""

"""Payments: gateway adapters and the gate that releases completed files."""

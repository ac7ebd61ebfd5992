"""Descriptor contract of the compute passes that consume baked models."""

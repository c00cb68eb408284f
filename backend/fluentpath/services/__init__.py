"""Services package for the learning core."""

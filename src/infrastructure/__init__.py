"""Infrastructure layer: adapters implementing the domain ports."""

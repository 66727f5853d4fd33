"""Planning, template synthesis and deployment services."""

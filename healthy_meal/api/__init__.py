"""HTTP route handlers, one router per resource."""

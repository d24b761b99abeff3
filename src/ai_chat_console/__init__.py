"""Chat console with interchangeable local and networked message stores."""

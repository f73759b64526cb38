"""HTTP clients for content providers and the language model."""

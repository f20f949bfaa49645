"""External service integrations (Google Business Profile, OpenAI)."""

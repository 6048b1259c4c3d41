"""OpenWeather integration: HTTP client and response extraction."""

"""Weather chat bot: dispatch, caching and per-user state over Telegram and OpenWeatherMap."""

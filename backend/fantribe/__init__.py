"""FanTribe backend package."""

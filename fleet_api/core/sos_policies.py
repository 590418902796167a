"""SOS alert policy constants."""

from __future__ import annotations

# Seconds the driver has to cancel before the alert is sent
COUNTDOWN_START = 3

# Upper bound for the device position lookup, in seconds
GEOLOCATION_TIMEOUT_SECONDS = 10.0

# Response bodies returned by POST /sos/trigger
TRIGGER_OK_MESSAGE = "SOS Triggered Successfully"
DRIVER_NOT_FOUND_MESSAGE = "Driver not found"
SERVER_BUSY_MESSAGE = "Server busy"

# Driver-facing notices shown by the countdown client
NOTICE_SENT = "SOS SIGNAL SENT TO ADMIN!"
NOTICE_FAILED = "SOS FAILED! CALL OFFICE."
NOTICE_NO_LOCATION = "Unable to get your location. SOS not sent, call the office."

MAPS_LINK_TEMPLATE = "https://www.google.com/maps?q={lat},{lon}"

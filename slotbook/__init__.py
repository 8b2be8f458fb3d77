"""slotbook: availability slots and conflict-safe bookings for service providers"""

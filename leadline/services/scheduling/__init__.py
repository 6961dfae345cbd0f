"""Booking stub."""

from leadline.services.scheduling.booking import BookingLink, BookingService, TimeSlot

__all__ = ["BookingLink", "BookingService", "TimeSlot"]

"""Bookings app package.

Home of the booking price and validity engine: stay date validation,
pricing with the monthly discount, booking numbers and the availability
check, composed by the booking use cases in ``application``. Overlapping
bookings are kept out by checking availability inside a transaction that
holds a lock on the property row.
"""

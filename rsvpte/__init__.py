"""RSVP-TE signalling: packet encoding, route lookup, PATH/RESV state tables and soft-state refresh."""

__version__ = "0.1.0"
"""
AirLedger — shared configuration and process context.
"""

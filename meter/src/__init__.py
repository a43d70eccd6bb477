"""
Single-shot poller for an Iskra-style power meter behind a Modbus TCP gateway.

Reads the meter's register blocks over Modbus TCP, decodes the 7M.24 register
data types into a MeasurementSnapshot, and writes one row per invocation into a
TimescaleDB hypertable.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

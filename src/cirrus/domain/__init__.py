"""Domain value types: records, aggregate events and the record query model."""

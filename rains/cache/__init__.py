"""Thread-safe in-memory caches for assertions, negative answers, zone keys, capabilities, connections and pending queries."""
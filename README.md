# rains

Building blocks for a RAINS name server: algorithm identifiers, connection
information and the thread-safe in-memory caches a server uses to keep track of
assertions, negative answers, zone keys, capabilities, connections and queries
that are still waiting for an answer.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `rains.algorithm_types`

- `SignatureAlgorithm` (`ED25519 = 1`, `ED448 = 2`) and `HashAlgorithm`
  (`NO_HASH_ALGO`, `SHA256`, `SHA384`, `SHA512`, `SHAKE256`, `FNV64`, `FNV128`,
  numbered 0 to 6). `str()` of a member gives its label, such as `"Ed25519"` or
  `"Shake256"`.
- `sig_from_str(text)` accepts a label, its lower- or upper-case spelling, or the
  number, and raises `ValueError` for anything else.
- `signature_to_json`, `signature_from_json`, `hash_to_json` and `hash_from_json`
  convert values to and from a JSON string holding the label. Unknown values and
  non-string JSON raise `ValueError`.

### `rains.connection`

- `ConnectionType` (`TCP = 1`, `SCION = 2`), with `connection_type_to_json` and
  `connection_type_from_json`.
- `TcpAddress(host, port, zone="")`, whose `network()` is `"tcp"` and whose
  `str()` is `host:port` (IPv6 hosts in brackets).
- `Info(type, addr)`, the address of one end of a connection.
- `unmarshal_net_addr(data)` reads a JSON object such as
  `{"Type": "TCP", "TCPAddr": {"IP": "127.0.0.1", "Port": 55553}}` and returns an
  `Info`. Missing keys, bad values and unknown types raise `ValueError`.
- `create_connection(addr)` opens a TLS connection to a `TcpAddress` without
  verifying the peer certificate. Other address kinds raise `ValueError`.
- `MAX_UDP_PACKET_BYTES` is 9000.

### `rains.cache`

- `base.LruCache`: a map that orders its non-internal entries by use. Internal
  entries are never offered for eviction. `get_or_add` returns `(value, added)`,
  `get` and `remove` return the value or `None`, `get_least_recently_used` returns
  `(key, value)` or `None`.
- `base.BoundedCounter(max_value)`: `inc()` and `add(n)` return `True` once the
  count reaches the maximum; `dec`, `sub`, `is_full` and `value` do what their
  names say.
- `assertion_cache.AssertionCache(max_size)`: assertions stored by fully
  qualified name, context and object type. `get(fqdn, context, obj_type, strict)`
  returns a list (empty when nothing matches); when `strict` is false it tries the
  name and then each parent name. Also `remove_expired_values`, `remove_zone`,
  `checkpoint` and `len()`. The helpers `merge_subject_zone` and `zone_hierarchy`
  are public.
- `neg_assertion_cache.NegAssertionCache(max_size)`: shards, pshards and zones
  stored by zone and context (`add_shard`, `add_pshard`, `add_zone`).
  `get(zone, context, interval)` returns the sections overlapping the interval.
  `intersect(first, second)` tests two name intervals for overlap.
- `zone_key_cache.ZoneKeyCache(max_size, warn_size, max_keys_per_zone)`: public
  keys with the assertion that holds them. `add` returns `False` once `warn_size`
  keys are cached or an eviction was needed, and logs a warning when a zone has
  more than `max_keys_per_zone` keys. `get(zone, context, sig_meta_data)` returns
  `(public_key, assertion)` for a non-expired key whose validity overlaps the
  signature's, or `None`. Also `remove_expired_keys`, `checkpoint`, and
  `zone_ctx_key(zone, context)`.
- `capability_cache.CapabilityCache(max_size)`: capability lists stored under the
  SHA-256 digest of their sorted concatenation. It starts with two entries: the
  TLS-over-TCP list, kept permanently, and the empty-capability list.
  `get(digest)` returns the list or `None`.
- `connection_cache.ConnectionCache(max_size)`: open connections and a capability
  list for each remote address. When full, every connection of the least recently
  used address is closed and dropped. Connections are sockets or objects with a
  `remote_addr` and `close()`. `network_addr(addr)` gives the key used.
- `pending_key_cache.PendingKeyCache(max_size)`: maps a token to the sender
  waiting on a delegation query. Adding a token that is already present, or adding
  to a full cache, stores nothing.
- `pending_query_cache.PendingQueryCache(max_size)`: groups senders of identical
  queries under one token. `add` returns `True` only when the query must be
  forwarded. `pending_query_key(sections)` raises `ValueError` for sections that
  are not name queries.

The caches take sections by their attributes: assertions expose `subject_name`,
`subject_zone`, `context`, `content` (objects with a `type`) and `hash()`; shards,
pshards and zones expose `subject_zone`, `context`, `begin()`, `end()` and
`hash()`; public keys expose `algorithm`, `key_phase`, `valid_since`,
`valid_until` and `hash()`. Times are unix seconds.

## Example

```python
from rains.algorithm_types import SignatureAlgorithm, sig_from_str
from rains.cache.base import BoundedCounter

assert sig_from_str("ed25519") is SignatureAlgorithm.ED25519

counter = BoundedCounter(2)
counter.inc()
assert counter.inc()  # the second increment reaches the maximum
assert counter.is_full()
```

## What this package does not do

It has no server, resolver, zone publisher or command-line tools, and it defines
no section, query or message types of its own; the caches work with any objects
that have the attributes listed above. It does not encode or decode messages for
the wire. SCION addresses are not supported: `unmarshal_net_addr` raises
`ValueError` for them and `create_connection` accepts only TCP addresses.
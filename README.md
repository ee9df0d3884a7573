# ftdc

Building blocks for diagnostic data capture: the primitives used to encode
compact metric series, an error collector for continue-on-error work, and
an HDR histogram for recording skewed distributions such as latency.

## Installation

```
pip install .
```

The only runtime dependency is `pymongo`, whose `bson` module is used to
encode histogram snapshots.

To run the tests:

```
pip install ".[test]"
pytest
```

## Encoding helpers

`ftdc.encoding` holds the low-level pieces of the metric chunk format:

- `encode_value(val)` encodes a signed 64-bit integer as an unsigned varint
  (negative numbers are taken in two's complement); `decode_value(data,
  offset=0)` reads one back and returns `(value, next_offset)`. Truncated or
  overlong input raises `ValueError`.
- `encode_size_value(val)` packs a length as 4 little-endian bytes; values
  outside the unsigned 32-bit range raise `ValueError`.
- `compress_buffer(data)` returns the 4-byte uncompressed length followed by
  a zlib stream; `decompress_buffer(data)` skips the prefix and inflates the
  rest, raising `ValueError` on short or corrupt input.
- `undelta(value, deltas)` rebuilds a series from its starting value and
  successive deltas, wrapping to the signed 64-bit range.
  `undelta_floats(value, deltas)` is the float variant, where the stored
  values are whole rather than deltas.
- `normalize_float(value)` / `restore_float(value)` convert between a float
  and its IEEE-754 bit pattern held as a signed 64-bit integer.
- `epoch_ms(moment)` gives milliseconds since the Unix epoch (naive
  datetimes are taken as UTC); `time_epoch_ms(ms)` returns the matching UTC
  datetime.
- `get_offset(count, sample, metric)` is the flat index of a sample in a
  metric-major matrix.
- `is_num(num, value)` reports whether `value` is an `int` or `float` (not a
  `bool`) equal to `num`.

```python
from ftdc.encoding import (
    compress_buffer, decode_value, decompress_buffer, encode_value, undelta,
)

undelta(10, [1, 2, 3])                          # [10, 11, 13, 16]
decode_value(encode_value(300))                 # (300, 2)
decompress_buffer(compress_buffer(b"payload"))  # b"payload"
```

## Collecting errors

`ftdc.catcher.Catcher` gathers errors while work carries on. It is safe to
use from several threads. `None` is always ignored, so results can be added
without checking them first.

- `add`, `add_when`, `extend`, `extend_when` record exceptions.
- `new`, `new_when` record a new error from a message (empty messages are
  ignored); `errorf`, `errorf_when` format the message with `%`.
- `wrap`, `wrapf` record an error prefixed with a message.
- `check`, `check_when` call a function and record the error it returns or
  raises.
- `len(catcher)`, `has_errors()`, `errors()` and `str(catcher)` inspect what
  was collected.
- `resolve()` returns `None`, or a `CollectedErrors` exception whose message
  joins every collected error with newlines. Collected errors are kept.

```python
from ftdc.catcher import Catcher

interval = 0
sample_count = 5

catcher = Catcher()
catcher.new_when(interval < 1, "interval must be positive")
catcher.errorf_when(sample_count < 10, "sample count must be at least 10, got %d", sample_count)

error = catcher.resolve()
if error is not None:
    raise error
```

## HDR histograms

`ftdc.histogram.Histogram(min_value, max_value, sigfigs)` records values
within a trackable range with 1 to 5 significant figures (other values
raise `ValueError`). Recording a value that is negative or too large raises
`ValueError`.

```python
from ftdc.histogram import Histogram

hist = Histogram(1, 10_000_000, 3)
for latency in (120, 340, 560, 9_800):
    hist.record_value(latency)

hist.record_values(200, 10)                 # ten occurrences of 200
hist.record_corrected_value(1000, 100)      # back-fills values missed in a stall

hist.value_at_quantile(99)
hist.mean(), hist.std_dev(), hist.max(), hist.min()
hist.total_count
hist.cumulative_distribution()              # list of Bracket(quantile, count, value_at)
hist.distribution()                         # list of Bar(from_value, to_value, count)
hist.byte_size()
```

`merge(other)` adds another histogram's values and returns how many could
not be recorded; `reset()` forgets everything. Two histograms compare equal
with `==` when their settings and counts match.

## Snapshots

`ftdc.snapshot.Snapshot` is the exported state of a histogram: the lowest
and highest trackable values, the significant figures and the raw counts.
It converts to and from a plain dict, BSON and JSON, using the field names
`lowest`, `highest`, `figures` and `counts`.

```python
from ftdc.histogram import from_bson, from_json, import_snapshot

snapshot = hist.export()
assert import_snapshot(snapshot) == hist
assert from_bson(hist.to_bson()) == hist
assert from_json(hist.to_json()) == hist
```

## Windowed histograms

`ftdc.window.WindowedHistogram(n, min_value, max_value, sigfigs)` keeps a
ring of `n` histograms. Values go into `current`; `rotate()` resets the
oldest histogram and makes it current; `merge()` returns one histogram
holding the values of the whole window (the same object is refilled on each
call).

```python
from ftdc.window import WindowedHistogram

window = WindowedHistogram(3, 1, 1000, 3)
window.current.record_value(42)
window.rotate()
window.current.record_value(84)
window.merge().value_at_quantile(50)
```

## What this package does not do

It provides the encoding primitives, not a complete data capture pipeline:
there are no collectors that build metric chunks from documents, no reader
or iterator for diagnostic data files, no runtime or system metrics
gathering, and no command-line tool.
# klibkit

A collection of compact building blocks with no third-party dependencies:

- `klibkit.avl`: an order-statistic AVL tree (`AvlTree`, `InsertResult`) that
  reports, on every lookup or insertion, how many stored elements are less than
  or equal to the key.
- `klibkit.khash`: an open-addressing hash set with quadratic probing and
  tombstones (`KHash`, `PutStatus`).
- `klibkit.khashl`: a linear-probing hash set and map with backward-shift
  deletion (`KHashSet`, `KHashMap`), plus variants that keep each key's hash in
  its bucket (`KHashSetCached`, `KHashMapCached`).
- `klibkit.ksw`: striped local Smith-Waterman alignment with affine gaps
  (`align`, `QueryProfile`, `AlignFlag`, `AlignResult`).
- `klibkit.ksw_extend`: banded seed extension (`extend`, `ExtendResult`) and
  banded global alignment with a CIGAR trace (`global_align`, `GlobalResult`).
- `klibkit.kthread`: a work-stealing parallel for loop (`parallel_for`), a
  reusable thread pool (`ForPool`) and a multi-step ordered pipeline (`pipeline`).
- `klibkit.kurl`: a buffered, seekable reader over local files and remote
  (HTTP/HTTPS/S3) URLs (`Kurl`, `KurlError`, `s3_sign`, `s3_parse`), and the
  `kurl` command.

## Installation

```
pip install klibkit
```

For running the test suite:

```
pip install "klibkit[test]"
pytest
```

## Examples

### AVL tree

```python
from klibkit.avl import AvlTree

tree = AvlTree(lambda a, b: a < b)
for key in "hello world":
    tree.insert(key)          # returns InsertResult(data, is_new, rank)
tree.erase("o")
print(len(tree), "".join(tree))   # elements come back in sorted order
print("w" in tree)
print(tree.find("l"))             # (element or None, rank)
```

### Hash tables

```python
from klibkit.khashl import KHashMap

counts = KHashMap(hash, lambda a, b: a == b, int)
for word in "a b a c b a".split():
    counts[word] = counts[word] + 1
print(counts["a"])
```

Without a `default_factory`, reading a missing key raises `KeyError`.

`KHash` and `KHashSet` expose their bucket layout as well: `put` places a key
and returns its bucket index together with what happened (a `PutStatus` for
`KHash`, a "was absent" flag for `KHashSet`), `get` finds a bucket index (or
`end()` when the key is absent), and `delete` removes the key held at a bucket.

### Local alignment

Sequences are given as small integer codes in `range(m)`; the scoring matrix is
a flat list of `m * m` signed-byte values.

```python
from klibkit.ksw import AlignFlag, align

m = 5  # A, C, G, T and an ambiguous code
mat = []
for i in range(4):
    mat += [1 if i == j else -3 for j in range(4)] + [0]
mat += [0] * 5

query = [0, 1, 2, 3, 0, 1]
target = [3, 3, 0, 1, 2, 3, 0, 1, 2]
result = align(query, target, m, mat, 5, 2, AlignFlag.START)
print(result.score, result.qb, result.qe, result.tb, result.te)
```

`AlignFlag.BYTE` scores in unsigned bytes (saturating at 255), `SUBO` tracks a
second-best hit above the score in the low 16 bits of `xtra`, `STOP` stops once
that score is reached, and `START` also finds the start positions. A
`QueryProfile` built once can be passed as `profile` to align one query against
many targets.

`extend` and `global_align` in `klibkit.ksw_extend` take the same sequence and
matrix conventions, plus a band width:

```python
from klibkit.ksw_extend import extend, global_align

print(extend(query, target, m, mat, 5, 2, w=10, h0=0))
print(global_align(query, target, m, mat, 5, 2, w=10).cigar_string)
```

### Threads

```python
from klibkit.kthread import ForPool, parallel_for

squares = [0] * 100

def work(i, tid):
    squares[i] = i * i

parallel_for(4, work, len(squares))

with ForPool(4) as pool:
    pool.run(work, len(squares))
```

`pipeline(n_threads, func, shared, n_steps)` runs `func(shared, step, data)`
over consecutive batches: step 0 receives `None` and produces a batch, each
later step receives what the previous step returned, and each step handles
batches in order. A worker stops when any step other than the last returns
`None`. An exception raised by `func` in any of these helpers is raised again
in the calling thread.

### Reading local files and URLs

```python
import os
from klibkit.kurl import Kurl

with Kurl.open("data.bin") as f:
    f.seek(1024, os.SEEK_SET)
    chunk = f.read(4096)
    print(f.tell(), f.eof())
```

`Kurl.from_fd(fd)` wraps an already open descriptor. Failed seeks raise
`KurlError`, whose `code` is one of `KurlError.INV_WHENCE`, `SEEK_OUT` or
`NO_AUTH`; `SEEK_END` works on local files only.

For `s3://bucket/object` URLs, pass `s3_key_id` and `s3_secret`, or point
`s3_key_file` at a file whose first line is the key id and second line the
secret key; without either, `$HOME/.awssecret` is read.

## Command line

`kurl` copies a file or URL to standard output:

```
kurl [-c start] [-l length] [-a keyfile] <url>
```

- `-c start`: begin at this byte offset
- `-l length`: copy at most this many bytes
- `-a keyfile`: read S3 credentials from this file

It exits with 1 on a usage error, 2 if the input cannot be opened and 3 if the
seek fails.

## What it does not do

- There is no command for aligning sequence files: the alignment functions work
  on integer-coded sequences, and reading FASTA/FASTQ and encoding residues is
  left to the caller.
- `Kurl` only reads; it cannot write or upload. HTTPS certificates are not
  verified.
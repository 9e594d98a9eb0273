# nekort

Runtime support for a small dynamic virtual machine: its value model,
a set of builtin operations, UTF-8 helpers, an event-driven XML parser
and a reader for bytecode embedded in ELF executables.

## Contents

- `nekort.values` – the value model. `NekoObject` maps integer field ids
  to values and may have a prototype (`get` searches the prototype chain;
  `set`, `has`, `remove`, `fields`, `copy` work on the object itself).
  `NekoFunction` wraps a Python callable with a fixed arity or `-1` for
  variable arguments; `call_function` calls one, optionally with a new
  `this` value. `Kind` and `Abstract` tag opaque data, and `kind_share` /
  `kind_lookup` keep a registry of named kinds. `field_hash` turns a field
  name into its id and remembers it for `field_name`; `value_hash` is a
  structural 30-bit hash; `best_int` wraps an integer to signed 32 bits.
  Runtime failures raise `NekoError`.
- `nekort.runtime` – builtins: `to_int` and `to_float` conversions
  (including hexadecimal strings), `type_of`, `is_true`, `is_nan`,
  `is_infinite`, truncating 32-bit `idiv`, `fasthash`, and the function
  helpers `nargs`, `closure`, `apply` (partial application) and `varargs`.
  `HashTable` is a chained table keyed by `value_hash`, with `get`, `mem`,
  `set`, `add`, `remove`, `resize`, `items`, `count` and `size`; lookups
  take an optional two-argument comparison function.
- `nekort.utf8` – operations on UTF-8 byte strings: `validate`, `length`,
  `sub`, `get`, `iter_chars`, `compare`, and an incremental `Utf8Buffer`.
  Only `validate` fully checks the encoding.
- `nekort.xml` – `parse_xml(text, events)` reads a document and calls
  `xml`, `done`, `pcdata`, `cdata`, `comment` and `doctype` on an
  `XmlEvents` handler. Malformed input raises `XmlParseError`, which
  carries the line number.
- `nekort.elf` – `read_header`, `find_section` and
  `find_embedded_bytecode`, which returns the `(begin, end)` file offsets
  of the `.nekobytecode` section of an executable, or `None`.

## Installation

```
pip install .
```

## Examples

```python
from nekort import utf8
from nekort.runtime import HashTable, apply, to_int
from nekort.values import NekoFunction

assert utf8.length("héllo".encode()) == 5
assert to_int("0x1F") == 31

add = NekoFunction(lambda a, b: a + b, 2, "add")
add_one = apply(add, 1)
assert add_one(2) == 3

table = HashTable()
assert table.set("key", 1) is True
assert table.get("key") == 1
```

```python
from nekort.xml import XmlEvents, parse_xml

class Printer(XmlEvents):
    def xml(self, name, attribs):
        print("open", name, attribs)

    def done(self):
        print("close")

    def pcdata(self, text):
        print("text", text)

parse_xml('<a x="1">hi</a>', Printer())
# open a {'x': '1'}
# text hi
# close
```

## What it does not do

The package provides the runtime's values and primitives only. It does
not load or execute bytecode modules, has no interpreter loop, and
installs no command-line program.

## Running the tests

```
pip install .[test]
pytest
```
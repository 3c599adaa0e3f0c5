# rsshkit

A small, dependency-free toolkit for building interactive, SSH-style command
servers in Python.

## What is inside

- `rsshkit.trie.Trie`: a thread-safe prefix tree for tab completion
  (`add`, `remove`, `prefix_match`, `values`). Only leaves are reported as
  values, so a string that is a strict prefix of another stored string is not
  returned on its own.
- `rsshkit.table.Table`: renders titled, boxed ASCII tables with multi-line
  cells (`add_values`, `output_strings`, `fprint`, `fprint_width`, `print`).
  The first row holds the column names; a row with the wrong number of values
  raises `ValueError`.
- `rsshkit.logger.Logger`: prefixes each message with an id, the urgency and
  the caller's file, line and function, and hands it to the standard
  `logging` module. `info`, `warning`, `error` and `fatal` take printf-style
  arguments; `fatal` logs and then raises `FatalLogError`. A logger created
  with `enabled=False` discards everything.
- `rsshkit.observer`: `Observer` keeps callbacks under random hex ids
  (`register`, `deregister`) and `notify` calls each one with a `Message` on
  its own thread. `Message` is an abstract base with `json()` and `summary()`.
- `rsshkit.storage`: `store_disk(path, reader)` copies a binary stream to a
  file with mode 0700. `store(filename, reader)` copies it into an anonymous
  memory file where `os.memfd_create` is available and returns its
  `/proc/self/fd/N` path, falling back to `store_disk` otherwise.
- `rsshkit.terminal.parsing`: `parse_line(line, cursor_position)` splits a
  command line into a command, `--long` and `-s` flags (combined short flags
  such as `-abc` are set without arguments) and arguments with `"`, `'` and
  `` ` `` quoting and backslash escapes, and notes which node the cursor is on.
  `ParsedLine` offers `is_set`, `get_args`, `get_args_string`, `get_arg`,
  `get_arg_string` and `expect_args`; a missing flag raises `FlagNotSetError`,
  a wrong number of arguments raises `ValueError`.
  `parse_line_valid_flags` also rejects unknown flags, and `make_help_text`
  joins lines.
- `rsshkit.terminal.command`: the abstract `Command` (`expect`, `run`, `help`)
  and the completion tags `REMOTE_ID`, `FUNCTIONS` and `WEB_SERVER_FILE_IDS`.
- `rsshkit.terminal.keys`: VT100 key decoding (`bytes_to_key`), the
  `HistoryRing` of entered lines, `VT100_ESCAPE_CODES`, `visual_length`,
  `is_printable`, `write_with_crlf` and `read_password_line`.
- `rsshkit.terminal.completion`: `default_auto_complete`, which completes
  command names on Tab and, through a command's `expect`, its arguments,
  cycling through candidates on repeated presses.
- `rsshkit.terminal.terminal.Terminal`: a line-editing terminal over any
  object with `read(size)` and `write(bytes)`. It supports cursor movement,
  word movement and deletion, history, bracketed paste, window resizing and
  raw pass-through mode. `read_line` returns a line or raises `CtrlCError`,
  `CtrlDError`, `PasteIndicator` (carrying the pasted `line`) or `EOFError`.
  `Terminal.advanced(conn, user, prompt)` turns on tab completion and serves
  `window-change` requests from `user.shell_requests`; `add_commands` and
  `run` make it a command loop.
- `rsshkit.mux`: a TCP listener that reads the first three bytes of each
  connection and hands it to the SSH or HTTP listener (`listen`,
  `listen_with_config`, `Multiplexer.ssh()`, `Multiplexer.http()`). Accepted
  connections are `BufferedConnection` objects that replay the sniffed bytes.
- `rsshkit.users`: a process-wide registry of connected users
  (`create_user`, `list_users`, `delete_user`), keyed by `user@host:port`.

## Installation

```
pip install .
```

## Examples

Parsing a command line:

```python
from rsshkit.terminal.parsing import parse_line

line = parse_line("toaster --long_arg test -t a", 0)
line.command.value                # "toaster"
line.get_arg_string("long_arg")   # "test"
line.get_arg_string("t")          # "a"
```

Completing from a trie:

```python
from rsshkit.trie import Trie

names = Trie("hello frank", "hello world", "apple")
sorted(names.prefix_match("hel"))  # ["hello frank", "hello world"]
```

Printing a table:

```python
from rsshkit.table import Table

table = Table("Clients", "ID", "Address")
table.add_values("1", "198.51.100.7:2200")
table.print()
```

Splitting SSH and HTTP traffic on one port:

```python
from rsshkit.mux import listen

with listen("127.0.0.1:2222") as mux:
    ssh_conn = mux.ssh().accept()
    first = ssh_conn.recv(3)  # b"SSH"
```

## What it does not do

rsshkit provides the pieces around an SSH-style server, not the server itself.
It does not implement the SSH or HTTP protocols: the multiplexer only routes
raw sockets, and `Terminal` and `create_user` work with connection and request
objects that the caller supplies. There is no command-line program and no
built-in set of commands; applications define their own `Command` classes.

## Running the tests

```
pip install .[test]
pytest
```
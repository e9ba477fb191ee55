#!/usr/bin/env python3
"""
Name: mimeencode
Description: encode a file as MIME base64 with CRLF line breaks
Author: Andreas Waidler
License:
"""

import sys
import os
import argparse
import io

__version__ = "1.1.0"

# --- Exit Codes ---
EX_SUCCESS = 0
EX_USAGE = 1   # Wrong number of arguments or a bad option
EX_OPEN = 2    # Input file could not be opened
EX_CLOSE = 3   # Input file could not be closed after encoding
EX_IOERR = 4   # Read or write failure while encoding

BASE64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
PAD_CHAR = "="
BLOCK_SIZE = 3        # Raw bytes per group
GROUP_SIZE = 4        # Encoded characters per group
GROUPS_PER_LINE = 19  # 76 characters, the MIME (RFC 2045) line limit
LINE_END = "\r\n"


def encode_block(block: bytes) -> str:
    """
    Encodes one group of 1 to 3 bytes as exactly 4 base64 characters.

    The bytes are packed big-endian into the top of a 24-bit word, so a
    short block behaves as if it were padded with zero bytes. Only the
    6-bit fields that carry real data bits are looked up in the alphabet;
    the rest of the group is filled with '='.
    """
    len_in = len(block)
    assert 1 <= len_in <= BLOCK_SIZE, f"block of {len_in} bytes"

    # Round up: 1 byte -> 2 chars, 2 bytes -> 3 chars, 3 bytes -> 4 chars.
    len_out = (8 * len_in + 5) // 6

    word = 0
    for i, byte_val in enumerate(block):
        word |= byte_val << (8 * (BLOCK_SIZE - 1 - i))

    chars = [
        BASE64_ALPHABET[(word >> (6 * (GROUP_SIZE - 1 - i))) & 0x3F]
        for i in range(len_out)
    ]
    chars.extend(PAD_CHAR * (GROUP_SIZE - len_out))
    return "".join(chars)


def read_block(input_stream) -> bytes:
    """
    Reads up to BLOCK_SIZE bytes, retrying short reads until the source
    is exhausted. A result shorter than BLOCK_SIZE means end of input.
    """
    block = input_stream.read(BLOCK_SIZE)
    while block and len(block) < BLOCK_SIZE:
        more = input_stream.read(BLOCK_SIZE - len(block))
        if not more:
            break
        block += more
    return block


def encode_stream(input_stream, output_stream):
    """
    Reads a binary stream to exhaustion and writes its base64 encoding to a
    text stream, 19 groups (76 characters) per CRLF-terminated line.

    Only an empty read ends the input, and every pass of the outer loop
    ends with a line terminator, even when it wrote no groups. Input whose
    last group completes a 19-group line (57k, 57k + 55 or 57k + 56 bytes)
    therefore gets one extra bare CRLF, and empty input produces a single
    CRLF.

    Errors raised by either stream propagate; output already written is
    left as is.
    """
    eof = False
    while not eof:
        for _ in range(GROUPS_PER_LINE):
            block = read_block(input_stream)
            if not block:
                eof = True
                break

            output_stream.write(encode_block(block))
        output_stream.write(LINE_END)


def describe_error(e: OSError) -> str:
    """Returns the OS message for an error, or its text when there is none."""
    return e.strerror or str(e)


class UsageErrorParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with EX_USAGE."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EX_USAGE, f"{self.prog}: {message}\n")


def main():
    """Parses the file argument, then encodes that file to standard output."""
    parser = UsageErrorParser(
        description="Encode a file as MIME base64 (76-column lines, CRLF line endings).",
        usage="%(prog)s [-v] FILE"
    )
    parser.add_argument(
        '-v', '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    # Counted by hand below so that a missing file name gets its own message.
    parser.add_argument(
        'files',
        nargs='*',
        metavar='FILE',
        help="File to encode, or '-' for standard input."
    )

    args = parser.parse_args()
    program_name = os.path.basename(sys.argv[0])

    # --- 1. Argument Validation ---
    if not args.files:
        print(f"{program_name}: No file name passed.", file=sys.stderr)
        sys.exit(EX_USAGE)
    if len(args.files) > 1:
        print(f"{program_name}: Exactly one file name expected.", file=sys.stderr)
        sys.exit(EX_USAGE)
    file_name = args.files[0]

    # --- 2. Open Input Stream ---
    if file_name == '-':
        input_stream = sys.stdin.buffer
    else:
        if os.path.isdir(file_name):
            print(f"{program_name}: Failed to open file '{file_name}': Is a directory", file=sys.stderr)
            sys.exit(EX_OPEN)
        try:
            input_stream = open(file_name, 'rb')
        except OSError as e:
            print(f"{program_name}: Failed to open file '{file_name}': {describe_error(e)}", file=sys.stderr)
            sys.exit(EX_OPEN)

    # --- 3. Encode ---
    # CRLF must reach standard output untranslated. Other text streams
    # (e.g. an io.StringIO standing in for stdout) are written as they are.
    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding='ascii', newline='')

    exit_status = EX_SUCCESS
    broken_pipe = False
    try:
        encode_stream(input_stream, sys.stdout)
        sys.stdout.flush()
    except BrokenPipeError:
        # The reader went away (e.g. `mimeencode FILE | head`).
        broken_pipe = True
        exit_status = EX_IOERR
    except OSError as e:
        print(f"{program_name}: I/O error while encoding: {describe_error(e)}", file=sys.stderr)
        exit_status = EX_IOERR

    # --- 4. Release Input Stream ---
    if input_stream is not sys.stdin.buffer:
        try:
            input_stream.close()
        except OSError as e:
            print(f"{program_name}: Failed to close file '{file_name}': {describe_error(e)}", file=sys.stderr)
            if exit_status == EX_SUCCESS:
                exit_status = EX_CLOSE

    if broken_pipe:
        # Closing stderr keeps the interpreter's shutdown flush from complaining.
        sys.stderr.close()

    sys.exit(exit_status)


if __name__ == "__main__":
    main()

# varint.py -- Variable-width integer encoding/decoding
# Copyright (C) 2026 The gitpeek Authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitpeek is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Little-endian base-128 integers.

This is the encoding of the two size fields that open every delta stream.
The pack entry header and the offset-delta distance use different layouts;
their decoders live in :mod:`gitpeek.pack`.
"""

__all__ = ["decode_varint", "encode_varint"]


def encode_varint(value: int) -> bytes:
    """Encode an integer using variable-width encoding.

    Uses 7 bits per byte, least significant group first, with the high bit
    indicating continuation.

    Args:
      value: Integer to encode
    Returns:
      Encoded bytes
    """
    if value < 0:
        raise ValueError(f"cannot encode negative value {value}")
    if value == 0:
        return b"\x00"

    result = []
    while value > 0:
        byte = value & 0x7F
        value >>= 7
        if value > 0:
            byte |= 0x80
        result.append(byte)

    return bytes(result)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a variable-width encoded integer from bytes.

    Args:
      data: Bytes to decode from
      offset: Starting offset in data
    Returns:
      tuple of (decoded_value, new_offset)
    Raises:
      ValueError: if data ends before the final byte of the integer
    """
    value = 0
    shift = 0
    pos = offset

    while True:
        if pos >= len(data):
            raise ValueError("truncated variable-width integer")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << shift
        shift += 7
        if not (byte & 0x80):
            break

    return value, pos

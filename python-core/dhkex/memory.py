#!/usr/bin/env python3
"""
DHKEX Secure Memory Module

Storage for secret-classified key material (secret scalars and shared
secrets). Every byte of such material lives in a SecureBuffer, a mutable
buffer that is locked in RAM where the platform allows it and overwritten
before it is released.

The module addresses three concerns:

1. Swapping:
   Pages holding key material are locked with mlock (Linux/macOS) or
   VirtualLock (Windows). Locking is best-effort; when the platform refuses,
   the buffer is still usable and still wiped.

2. Zeroization:
   secure_wipe() overwrites a buffer with 0x00, 0xFF, random bytes and a
   final 0x00 pass. The final state is always all-zero, which is what tests
   observe after a value is released.

3. Constant-time comparison:
   secure_compare() touches every byte regardless of where the first
   difference is.

Limitations:
    Python bytes objects are immutable and cannot be wiped. The key-exchange
    layer keeps secrets out of bytes objects except for the single transient
    copy handed to the curve library for a scalar multiplication.
"""

# ============================================================================
# Import Statements
# ============================================================================

import ctypes
import logging
import os
import platform
from typing import Optional, Union

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


# ============================================================================
# Platform Detection
# ============================================================================

PLATFORM = platform.system().lower()

IS_LINUX = PLATFORM == "linux"
IS_MACOS = PLATFORM == "darwin"
IS_WINDOWS = PLATFORM == "windows"

# Overwrite patterns applied by secure_wipe(); None means random bytes.
WIPE_PATTERNS = (0x00, 0xFF, None, 0x00)

_lock_warning_emitted = False


# ============================================================================
# Page Locking
# ============================================================================


def _libc() -> Optional[ctypes.CDLL]:
    if IS_LINUX:
        return ctypes.CDLL("libc.so.6")
    if IS_MACOS:
        return ctypes.CDLL("libc.dylib")
    return None


def _lock_pages(buffer: bytearray) -> bool:
    """
    Lock the pages backing ``buffer`` so they are not swapped to disk.

    Returns:
        bool: True if the platform accepted the lock
    """
    size = len(buffer)
    try:
        address = ctypes.addressof((ctypes.c_char * size).from_buffer(buffer))
        if IS_LINUX or IS_MACOS:
            return _libc().mlock(ctypes.c_void_p(address), ctypes.c_size_t(size)) == 0
        if IS_WINDOWS:
            kernel32 = ctypes.windll.kernel32
            return bool(kernel32.VirtualLock(ctypes.c_void_p(address), ctypes.c_size_t(size)))
    except (OSError, AttributeError) as e:
        logger.debug(f"Memory locking unavailable: {e}")
    return False


def _unlock_pages(buffer: bytearray) -> None:
    size = len(buffer)
    try:
        address = ctypes.addressof((ctypes.c_char * size).from_buffer(buffer))
        if IS_LINUX or IS_MACOS:
            _libc().munlock(ctypes.c_void_p(address), ctypes.c_size_t(size))
        elif IS_WINDOWS:
            ctypes.windll.kernel32.VirtualUnlock(ctypes.c_void_p(address), ctypes.c_size_t(size))
    except (OSError, AttributeError) as e:
        logger.debug(f"Memory unlocking unavailable: {e}")


# ============================================================================
# Secure Memory Functions
# ============================================================================


def secure_allocate(size: int) -> bytearray:
    """
    Allocate a zero-filled buffer for secret material and try to lock it.

    Args:
        size: Number of bytes to allocate. Must be positive.

    Returns:
        bytearray: The zero-filled buffer. The caller owns it and must
        release it with secure_free().

    Raises:
        ValueError: If size is not positive
    """
    global _lock_warning_emitted

    if size <= 0:
        raise ValueError("Size must be positive")

    buffer = bytearray(size)
    if not _lock_pages(buffer) and not _lock_warning_emitted:
        logger.warning("Could not lock secret buffers in memory; continuing unlocked")
        _lock_warning_emitted = True
    return buffer


def secure_free(buffer: Optional[bytearray]) -> None:
    """Wipe ``buffer`` and release its page lock."""
    if buffer is None:
        return
    secure_wipe(buffer)
    _unlock_pages(buffer)


def secure_wipe(data: Union[bytearray, memoryview]) -> None:
    """
    Overwrite a mutable buffer in place.

    Four passes are applied (see WIPE_PATTERNS); the buffer ends all-zero.
    Immutable bytes cannot be wiped and are rejected.

    Args:
        data: bytearray or writable memoryview to wipe

    Raises:
        TypeError: If data is immutable

    Example:
        >>> buffer = bytearray(b"secret_data_here")
        >>> secure_wipe(buffer)
        >>> bytes(buffer)
        b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x00'
    """
    if isinstance(data, bytes):
        raise TypeError("Cannot wipe immutable bytes in place")

    view = memoryview(data)
    if view.readonly:
        raise TypeError("Cannot wipe a read-only buffer")
    size = view.nbytes
    if size == 0:
        return
    view = view.cast("B")

    for pattern in WIPE_PATTERNS:
        if pattern is None:
            view[:] = os.urandom(size)
        else:
            view[:] = bytes([pattern]) * size


def secure_compare(a: BytesLike, b: BytesLike) -> bool:
    """
    Compare two byte sequences in constant time.

    Length is not secret, so sequences of different length compare unequal
    immediately. Otherwise every byte pair is XORed and OR-accumulated, so
    the loop always runs to completion.

    Returns:
        bool: True if the sequences are equal
    """
    a = memoryview(a).cast("B")
    b = memoryview(b).cast("B")
    if a.nbytes != b.nbytes:
        return False

    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0


def is_all_zero(data: BytesLike) -> bool:
    """Constant-time check that every byte of ``data`` is zero."""
    result = 0
    for x in memoryview(data).cast("B"):
        result |= x
    return result == 0


# ============================================================================
# Secure Buffer Class
# ============================================================================


class SecureBuffer:
    """
    Owned, fixed-size storage for secret bytes with guaranteed wiping.

    The buffer is wiped when:
    - the ``with`` block using it exits, normally or through an exception
    - wipe() is called explicitly
    - the object is garbage collected (__del__), as the last safety net

    Wiping is idempotent. Reading a wiped buffer raises ValueError.

    Example:
        >>> with SecureBuffer.from_bytes(os.urandom(32)) as buf:
        ...     use(buf.view())
        ... # buf is all-zero here
    """

    def __init__(self, size: int):
        if size <= 0:
            raise ValueError("Size must be positive")
        self._size = size
        self._buffer = secure_allocate(size)
        self._wiped = False

    @classmethod
    def from_bytes(cls, data: BytesLike) -> "SecureBuffer":
        """Allocate a buffer and copy ``data`` into it."""
        data = memoryview(data).cast("B")
        buf = cls(data.nbytes)
        buf.write(data)
        return buf

    def __enter__(self) -> "SecureBuffer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.wipe()
        return False

    def __del__(self):
        self.wipe()

    def __len__(self) -> int:
        return self._size

    def write(self, data: BytesLike) -> None:
        """Overwrite the whole buffer with ``data`` (must match its size)."""
        self._check_live()
        data = memoryview(data).cast("B")
        if data.nbytes != self._size:
            raise ValueError(f"Expected {self._size} bytes, got {data.nbytes}")
        self._buffer[:] = data

    def view(self) -> memoryview:
        """
        Read-only view of the secret bytes. No copy is made.

        Warning:
            The view reads zeros once the buffer has been wiped. Do not keep
            it beyond the lifetime of the owning value.
        """
        self._check_live()
        return memoryview(self._buffer).toreadonly()

    def wipe(self) -> None:
        """Securely wipe the buffer. Safe to call multiple times."""
        buffer = getattr(self, "_buffer", None)
        if buffer is not None and not self._wiped:
            secure_free(buffer)
            self._wiped = True

    def _check_live(self) -> None:
        if self._wiped:
            raise ValueError("Secure buffer has been wiped")

    @property
    def is_wiped(self) -> bool:
        return self._wiped

    @property
    def buffer(self) -> bytearray:
        """
        The underlying bytearray.

        Exposed for instrumentation (erasure tests); bypasses every guarantee
        of this class.
        """
        return self._buffer

    @property
    def size(self) -> int:
        return self._size

# ---- badblocks -sv stderr transcripts (e2fsprogs 1.47, read-only test) ----

PROGRESS_PREFIX = b"Checking for bad blocks (read-only test): "


def redraw(status: str) -> bytes:
    """One progress redraw: the status text, then backspaces erasing it."""
    return status.encode() + b"\b" * len(status)


# Full pass over a small device, no errors
COMPLETED_SCAN = (
    b"Checking blocks 0 to 99\n"
    + PROGRESS_PREFIX
    + redraw("  0.00% done, 0:00 elapsed. (0/0/0 errors)")
    + redraw(" 50.00% done, 0:05 elapsed. (0/0/0 errors)")
    + b"done                                                 \n"
    + b"Pass completed, 0 bad blocks found. (0/0/0 errors)\n"
)

# Operator pressed Ctrl+C at 10%
INTERRUPTED_SCAN = (
    b"Checking blocks 0 to 99\n"
    + PROGRESS_PREFIX
    + redraw(" 10.00% done, 0:05 elapsed. (1/2/3 errors)")
    + b"\nInterrupted at block 42\n"
)

# Continuation of INTERRUPTED_SCAN, run as `badblocks -sv dev 99 42`
RESUMED_SCAN = (
    b"Checking blocks 42 to 99\n"
    + PROGRESS_PREFIX
    + redraw(" 60.00% done, 0:03 elapsed. (1/2/3 errors)")
    + b"done                                                 \n"
    + b"Pass completed, 2 bad blocks found. (1/2/4 errors)\n"
)

# Long scan where elapsed time has an hours field
HOURS_PROGRESS = (
    b"Checking for bad blocks (read-only test):  73.41% done, 12:04:31 elapsed. (0/0/7 errors)"
)

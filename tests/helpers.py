def position_of(text, needle, occurrence=0):
    """Return (1-based line, 0-based column) of the n-th occurrence of needle."""

    seen = 0
    for number, line in enumerate(text.split("\n"), start=1):
        start = 0
        while True:
            index = line.find(needle, start)
            if index < 0:
                break
            if seen == occurrence:
                return number, index
            seen += 1
            start = index + 1
    raise AssertionError(f"{needle!r} not found")

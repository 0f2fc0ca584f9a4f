"""statecompat Quickstart: Saving and Restoring an Object

This script saves one object in both payload generations and loads it back.
The Demo class keeps a public, a protected and a private field plus a
derived value that its reconstruction hook rebuilds after every restore.

Run with:
    python examples/quickstart.py
"""

import tempfile

from statecompat import Persistable, PayloadCodec
from statecompat.persistence import PayloadStore


class Demo(Persistable):
    id: int | None
    _name: str | None
    __flags: dict
    __computed: str | None

    def __init__(self, id=None, name=None, flags=None):
        self.id = id
        self._name = name
        self.__flags = flags or {}
        self.__computed = None

    def on_restored(self) -> None:
        # Rebuild transient state
        self.__computed = self._name.upper() if self._name is not None else None

    @property
    def name(self):
        return self._name

    @property
    def flags(self):
        return self.__flags

    @property
    def computed(self):
        return self.__computed


def show(label: str, demo: Demo) -> None:
    print(f"=== {label} ===")
    print(f"  id: {demo.id!r}")
    print(f"  name: {demo.name!r}")
    print(f"  flags: {demo.flags!r}")
    print(f"  computed: {demo.computed!r}")
    print()


def main():
    demo = Demo(123, "freemius", {"beta": True})
    show("Before serialize", demo)

    codec = PayloadCodec()
    payload = codec.snapshot(demo)
    print(f"Current payload: {payload}")
    print(f"Legacy field list: {codec.legacy_field_names(demo)}")
    print()

    copy = Demo.from_payload(payload)
    show("After restore", copy)

    # Older payload carrying a key Demo no longer declares
    stale = {
        "id": 123,
        "name": "freemius",
        "flags": {"beta": True},
        "computed": None,
        "error": "Should not see this",
    }
    show("After restore (stale payload)", Demo.from_payload(stale))

    with tempfile.TemporaryDirectory() as directory:
        store = PayloadStore(directory)
        for fmt in ("legacy", "current"):
            path = store.save(demo, label=fmt, fmt=fmt)
            show(f"Loaded from {fmt} envelope", store.load(path, Demo))

    print("Done.")


if __name__ == "__main__":
    main()

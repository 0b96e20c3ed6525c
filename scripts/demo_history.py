"""folio document history demo.

Simulates an editing session on a court document: typed edits with throttled
checkpoints, undo/redo, then a "page reload" that hydrates a fresh controller
from the file backend.

Run:
    python scripts/demo_history.py
    python scripts/demo_history.py --format msgpack --compress --max-size 20
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time

from folio.core.clock import Clock, SimClock
from folio.core.config import FolioConfig
from folio.history.config import HistoryConfig
from folio.history.controller import HistoryController
from folio.history.document import (
    Document,
    MarkdownFragment,
    PdfFragment,
    deserialize_history,
    serialize_history,
)
from folio.history.storage import FileStorage
from folio.utils.logging import setup_logging_from_config

logger = logging.getLogger("folio.demo")

DIVIDER = "=" * 70

SECTIONS = [
    ("Introduction", "Plaintiff moves to compel responses to the first set of interrogatories."),
    ("Facts", "Defendant was served on March 3 and has not responded."),
    ("Argument", "Responses were due thirty days after service."),
]


def _describe(ctrl: HistoryController) -> str:
    doc = ctrl.present
    titles = ", ".join(getattr(f, "title", None) or getattr(f, "name", "") for f in doc.fragments)
    return (
        f"past={len(ctrl.past):3d}  future={len(ctrl.future):3d}  "
        f"fragments={len(doc.fragments)} [{titles}]"
    )


def _append_text(doc: Document, index: int, ch: str) -> Document:
    frags = list(doc.fragments)
    frag = frags[index]
    frags[index] = MarkdownFragment(id=frag.id, title=frag.title, content=frag.content + ch)
    return doc.with_fragments(frags)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _wait_ms(clock: Clock, ms: float) -> None:
    if isinstance(clock, SimClock):
        clock.step_ms(ms)
    else:
        time.sleep(ms / 1000.0)


def stage_edit(ctrl: HistoryController, clock: Clock, keystroke_ms: float) -> None:
    """Stage 1: Add sections and type into them."""
    print(f"\n{DIVIDER}")
    print(f"STAGE 1: EDIT  (keystroke every {keystroke_ms:.0f} ms)")
    print(DIVIDER)

    t0 = time.monotonic()
    keystrokes = 0
    for i, (title, body) in enumerate(SECTIONS):
        ctrl.set(
            lambda doc, i=i, title=title: doc.with_fragments(
                doc.fragments + (MarkdownFragment(id=f"frag-{i + 1}", title=title),)
            )
        )
        index = len(ctrl.present.fragments) - 1
        for ch in body:
            ctrl.maybe_mark()
            ctrl.set(lambda doc, ch=ch: _append_text(doc, index, ch), record=False)
            _wait_ms(clock, keystroke_ms)
            keystrokes += 1
        ctrl.commit()
        print(f"  + {title:<14s} {_describe(ctrl)}")

    ctrl.set(
        lambda doc: doc.with_fragments(
            doc.fragments + (PdfFragment(id="frag-exhibit", name="exhibit-a.pdf"),)
        )
    )
    print(f"  + {'exhibit-a.pdf':<14s} {_describe(ctrl)}")
    print(f"\n  Keystrokes:      {keystrokes}")
    print(f"  Wall-clock time: {time.monotonic() - t0:.3f}s")


def stage_undo_redo(ctrl: HistoryController, steps: int) -> None:
    """Stage 2: Walk back and forth through history."""
    print(f"\n{DIVIDER}")
    print(f"STAGE 2: UNDO / REDO  ({steps} steps)")
    print(DIVIDER)

    for i in range(steps):
        ctrl.undo()
        print(f"  undo {i + 1:2d}: {_describe(ctrl)}")
    for i in range(steps // 2):
        ctrl.redo()
        print(f"  redo {i + 1:2d}: {_describe(ctrl)}")


async def stage_reload(config: HistoryConfig, storage: FileStorage, expected) -> None:
    """Stage 3: Hydrate a fresh controller from disk."""
    print(f"\n{DIVIDER}")
    print(f"STAGE 3: RELOAD  (directory={storage.directory})")
    print(DIVIDER)

    t0 = time.monotonic()
    async with HistoryController.from_config(
        config,
        Document(doc_title="Untitled"),
        storage=storage,
        serialize=serialize_history,
        deserialize=deserialize_history,
    ) as ctrl:
        wall = time.monotonic() - t0
        print(f"  Hydrated:        {ctrl.hydrated}")
        print(f"  Restored state:  {_describe(ctrl)}")
        print(f"  Matches session: {ctrl.state == expected}")
        print(f"  Load time:       {wall:.3f}s")
        ctrl.redo()
        print(f"  After redo:      {_describe(ctrl)}")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main():
    parser = argparse.ArgumentParser(description="folio Document History Demo")
    parser.add_argument("--config", default="config/default.yaml", help="Config file")
    parser.add_argument("--max-size", type=int, default=None, help="Override history bound")
    parser.add_argument("--throttle-ms", type=float, default=None, help="Override checkpoint window")
    parser.add_argument("--keystroke-ms", type=float, default=120, help="Simulated typing speed")
    parser.add_argument("--format", choices=["json", "msgpack"], default="json", help="Snapshot format")
    parser.add_argument("--compress", action="store_true", help="Enable gzip compression")
    parser.add_argument("--output", default=None, help="Storage directory")
    parser.add_argument("--steps", type=int, default=4, help="Undo step count")
    parser.add_argument("--realtime", action="store_true", help="Type in wall-clock time")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    overrides = [
        "folio.history.persistence.enabled=true",
        f"folio.history.persistence.format={args.format}",
        f"folio.history.persistence.compression={str(args.compress).lower()}",
    ]
    if args.max_size is not None:
        overrides.append(f"folio.history.max_size={args.max_size}")
    if args.throttle_ms is not None:
        overrides.append(f"folio.history.throttle_ms={args.throttle_ms}")
    if args.output is not None:
        overrides.append(f"folio.history.persistence.directory={args.output}")
    if args.verbose:
        overrides.append("folio.system.log_level=DEBUG")
    overrides.append(f"folio.time.mode={'realtime' if args.realtime else 'simulated'}")

    config = FolioConfig(args.config)
    cfg = config.load(validate=True, overrides=overrides)
    setup_logging_from_config(cfg)
    hcfg = config.history()

    print(DIVIDER)
    print("folio - Document History Demo")
    print(DIVIDER)
    print(f"  Max size:    {hcfg.max_size or 'unbounded'}")
    print(f"  Throttle:    {hcfg.throttle_ms:.0f} ms")
    print(f"  Format:      {hcfg.persistence.format}")
    print(f"  Compression: {hcfg.persistence.compression}")

    storage = FileStorage(hcfg.persistence.directory, compression=hcfg.persistence.compression)
    clock = config.clock()
    with HistoryController.from_config(
        hcfg,
        Document(doc_title="Motion to Compel", plaintiff_name="Jane Doe"),
        storage=storage,
        clock=clock,
        serialize=serialize_history,
        deserialize=deserialize_history,
        auto_hydrate=False,
    ) as ctrl:
        ctrl.forget()
        stage_edit(ctrl, clock, args.keystroke_ms)
        stage_undo_redo(ctrl, args.steps)
        expected = ctrl.state

    asyncio.run(stage_reload(hcfg, storage, expected))
    logger.info("Demo finished")

    print(f"\n{DIVIDER}")
    print("DEMO COMPLETE")
    print(DIVIDER)


if __name__ == "__main__":
    main()

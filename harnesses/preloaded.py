"""Interactive harness: plan and dry-run reap against a registry snapshot.

Point REAPER_SNAPSHOT at a file written by ``scanner.py`` to try the
bundled test policies against real data; the default is the test snapshot.
"""

import os
from pathlib import Path

import yaml

from tag_reaper.config import Config
from tag_reaper.services.reaper import BuckDharma

support_dir = Path(__file__).parent.parent / "tests" / "support"
snapshot = Path(
    os.getenv("REAPER_SNAPSHOT", str(support_dir / "nexus.contents.json"))
)

config = yaml.safe_load((support_dir / "config.yaml").read_text())
for reg in config["registries"]:
    reg["inputFile"] = str(snapshot)
    reg["dryRun"] = True
cfg = Config.model_validate(config)

boc = BuckDharma(cfg)
boc.plan()
boc.report()
for report in boc.reap():
    skipped = ", ".join(report.skipped) or "none"
    print(
        f"{report.image}: would delete {len(report.deleted)},"
        f" skipped {skipped}, {len(report.errors)} errors"
    )

print("\nReaper application is in variable 'boc'")
print("---------------------------------------\n")

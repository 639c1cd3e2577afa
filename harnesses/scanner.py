"""Interactive harness; will connect to each configured registry and dump
its contents, suitable for use as an ``inputFile``.

For this particular harness, you will need to have:

* REAPER_CONFIG pointing at a reaper config file
* REAPER_USERNAME and REAPER_PASSWORD set, unless the config file
  carries credentials or the registries allow anonymous reads
"""

import os
from pathlib import Path

from tag_reaper.config import Config
from tag_reaper.services.reaper import Reaper

cfg = Config.from_file(Path(os.getenv("REAPER_CONFIG", "config.yaml")))

for idx, reg in enumerate(cfg.registries):
    reg.input_file = None
    reaper = Reaper(reg)
    output = Path(f"registry-{idx}.contents.json")
    reaper.storage.debug_dump_images(output)
    print(f"Dumped {reaper.name} to {output}")

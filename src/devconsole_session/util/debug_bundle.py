from __future__ import annotations

import time
import zipfile
from pathlib import Path


def create_debug_bundle(
    *,
    diagnostics_dir: str,
    log_file: str,
    out_dir: str = "data",
    account_name: str = "",
) -> Path:
    """
    Zip the captured console response(s) and the log file so they can be attached to a bug report.

    Cookie/storage_state files are never included.
    """
    out_root = Path(out_dir)
    out_root.mkdir(parents=True, exist_ok=True)

    stamp = time.strftime("%Y%m%d_%H%M%S")
    safe_account = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in (account_name or "").strip())
    account_part = f"_{safe_account}" if safe_account else ""
    out_path = out_root / f"devconsole_debug{account_part}_{stamp}.zip"

    diag = Path(diagnostics_dir)
    log = Path(log_file)

    def _add_file(z: zipfile.ZipFile, file_path: Path, arcname: str) -> None:
        try:
            if file_path.exists() and file_path.is_file():
                z.write(file_path, arcname=arcname)
        except OSError:
            # best-effort; a capture may be overwritten while we zip
            return

    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        _add_file(z, log, arcname=log.name)

        if diag.exists() and diag.is_dir():
            for p in sorted(diag.rglob("*")):
                if not p.is_file() or _looks_secret(p):
                    continue
                rel = p.relative_to(diag)
                _add_file(z, p, arcname=str(Path("diagnostics") / rel))

    return out_path


def _looks_secret(path: Path) -> bool:
    name = path.name.lower()
    return name.endswith(".env") or "storage_state" in name or "cookie" in name

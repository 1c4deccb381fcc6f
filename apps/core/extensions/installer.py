"""
Installs extension packages into the running interpreter's environment
"""

import asyncio
import logging
import sys

logger = logging.getLogger(__name__)

INSTALL_TIMEOUT = 300.0


async def install_package(name: str, timeout: float = INSTALL_TIMEOUT) -> bool:
    """
    pip-install a package. Returns True on success.
    Callers are expected to have validated the name.
    """
    logger.info(f"Installing extension package {name}")

    try:
        process = await asyncio.create_subprocess_exec(
            sys.executable,
            "-m",
            "pip",
            "install",
            "--disable-pip-version-check",
            "--no-input",
            name,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.error(f"Installing {name} timed out after {timeout}s")
        return False
    except OSError as e:
        logger.error(f"Couldn't run pip to install {name}: {e}")
        return False

    if process.returncode != 0:
        logger.error(f"Failed to install {name}: {stderr.decode('utf-8', errors='replace').strip()}")
        return False

    logger.info(f"Installed extension package {name}")
    return True

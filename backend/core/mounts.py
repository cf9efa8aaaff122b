"""
静态资源挂载
模块目录下的 static/ 挂载到 /static/{module}/
"""

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI

from core.static_files import CachedStaticFiles

logger = logging.getLogger(__name__)


def mount_module_static(app: FastAPI, modules_path: Optional[Path] = None) -> List[str]:
    """
    挂载所有模块的静态资源

    :param app: FastAPI 应用实例
    :param modules_path: 模块根目录，默认 backend/modules
    :return: 已挂载的路径列表
    """
    if modules_path is None:
        modules_path = Path(__file__).parent.parent / "modules"

    mounted = []
    if not modules_path.exists():
        return mounted

    for module_dir in sorted(modules_path.iterdir()):
        if module_dir.name.startswith("_"):
            continue
        module_static = module_dir / "static"
        if module_static.is_dir():
            mount_path = f"/static/{module_dir.name}"
            app.mount(
                mount_path,
                CachedStaticFiles(directory=str(module_static)),
                name=f"static_{module_dir.name}"
            )
            mounted.append(mount_path)
            logger.debug(f"挂载模块静态资源: {mount_path}/")

    return mounted

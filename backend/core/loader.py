"""
模块加载器
负责扫描、校验、加载模块
这是微内核架构的核心组件

- 生命周期钩子（on_install, on_enable）
- 模块依赖检查与拓扑排序
- 前端资源自动发现
"""

import importlib
import importlib.util
import sys
import logging
from typing import Dict, List, Optional, Any, Callable, Awaitable
from dataclasses import dataclass, field
from pathlib import Path
from datetime import datetime

from fastapi import FastAPI, APIRouter

from .config import get_settings
from .events import event_bus, Events, Event
from utils.timezone import get_utc_now

logger = logging.getLogger(__name__)

# 确保backend目录在sys.path中，以便模块可以导入core等包
_backend_path = str(Path(__file__).parent.parent.absolute())
if _backend_path not in sys.path:
    sys.path.insert(0, _backend_path)


# 异步钩子函数类型
LifecycleHook = Callable[[], Awaitable[None]]


@dataclass
class ModuleAssets:
    """模块前端资源配置"""
    css: List[str] = field(default_factory=list)  # CSS文件路径列表
    js: List[str] = field(default_factory=list)   # JS文件路径列表


@dataclass
class ModuleManifest:
    """模块清单协议"""
    id: str                          # 唯一标识
    name: str                        # 显示名称
    version: str                     # 版本号
    description: str = ""            # 描述
    icon: str = "📦"                 # 图标
    author: str = ""                 # 作者

    # 路由配置
    router_prefix: str = ""          # 路由前缀，如 /api/v1/ludic
    router: Optional[APIRouter] = None

    # 依赖声明
    dependencies: List[str] = field(default_factory=list)  # 依赖的其他模块ID

    # 权限声明
    permissions: List[str] = field(default_factory=list)

    # 前端资源
    assets: ModuleAssets = field(default_factory=ModuleAssets)

    # 状态
    enabled: bool = True

    # 首次建表后执行
    on_install: Optional[LifecycleHook] = None
    # 每次启动时执行
    on_enable: Optional[LifecycleHook] = None


@dataclass
class LoadedModule:
    """已加载模块信息"""
    manifest: ModuleManifest
    path: Path
    loaded_at: datetime = field(default_factory=get_utc_now)


class ModuleLoader:
    """
    模块加载器

    按命名规范，模块目录 modules/{id}/ 下需要有：
    - {id}_manifest.py（必须，含 manifest 对象）
    - {id}_models.py（可选，导入后表会注册到 Base.metadata）
    - {id}_router.py（可选，含 router 对象）
    """

    def __init__(self, app: Optional[FastAPI] = None, modules_dir: Optional[str] = None):
        self.app = app
        self.modules: Dict[str, LoadedModule] = {}
        if modules_dir:
            self.modules_path = Path(modules_dir)
        else:
            self.modules_path = Path(_backend_path) / get_settings().modules_dir

    def scan_modules(self) -> List[str]:
        """扫描模块目录"""
        if not self.modules_path.exists():
            logger.warning(f"模块目录不存在: {self.modules_path}")
            return []

        module_ids = []
        for item in sorted(self.modules_path.iterdir()):
            if item.is_dir() and not item.name.startswith("_"):
                manifest_file = item / f"{item.name}_manifest.py"
                if manifest_file.exists():
                    module_ids.append(item.name)
                    logger.debug(f"发现模块: {item.name}")

        return module_ids

    def _import_module(self, module_name: str, file_path: Path) -> Optional[Any]:
        """导入模块（优先使用标准导入，失败则回退到路径加载）"""
        try:
            return importlib.import_module(module_name)
        except ModuleNotFoundError:
            if not file_path.exists():
                return None
            spec = importlib.util.spec_from_file_location(module_name, file_path)
            if not spec or not spec.loader:
                return None
            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except Exception as e:
                sys.modules.pop(module_name, None)
                logger.error(f"路径加载模块失败 {module_name} ({file_path}): {e}")
                return None
            return module

    def load_manifest(self, module_id: str) -> Optional[ModuleManifest]:
        """加载模块清单"""
        manifest_file = self.modules_path / module_id / f"{module_id}_manifest.py"
        module = self._import_module(f"modules.{module_id}.{module_id}_manifest", manifest_file)
        if not module:
            return None

        manifest = getattr(module, "manifest", None)
        if not isinstance(manifest, ModuleManifest):
            logger.error(f"清单文件缺少manifest对象: {module_id}")
            return None

        self._discover_assets(module_id, manifest)
        return manifest

    def _discover_assets(self, module_id: str, manifest: ModuleManifest):
        """自动发现模块前端资源"""
        static_path = self.modules_path / module_id / "static"
        if not static_path.exists():
            return

        css_files = [f"/static/{module_id}/css/{f.name}" for f in sorted((static_path / "css").glob("*.css"))]
        js_files = [f"/static/{module_id}/js/{f.name}" for f in sorted((static_path / "js").glob("*.js"))]

        # 如果模块没有显式配置，则使用自动发现的资源
        if not manifest.assets.css:
            manifest.assets.css = css_files
        if not manifest.assets.js:
            manifest.assets.js = js_files

    def _check_dependencies(self, manifest: ModuleManifest) -> tuple[bool, List[str]]:
        """
        检查模块依赖

        Returns:
            (satisfied, missing): 是否满足依赖，缺失的模块列表
        """
        missing = [dep for dep in manifest.dependencies if dep not in self.modules]
        return len(missing) == 0, missing

    def _sort_by_dependencies(self, manifests: Dict[str, ModuleManifest]) -> List[str]:
        """
        按依赖关系排序模块
        使用拓扑排序确保依赖先加载
        """
        in_degree = {mid: 0 for mid in manifests}
        dependents: Dict[str, List[str]] = {mid: [] for mid in manifests}

        for mid, manifest in manifests.items():
            for dep in manifest.dependencies:
                if dep in manifests:
                    in_degree[mid] += 1
                    dependents[dep].append(mid)

        sorted_ids = []
        queue = [mid for mid in in_degree if in_degree[mid] == 0]
        while queue:
            mid = queue.pop(0)
            sorted_ids.append(mid)
            for dependent in dependents[mid]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(sorted_ids) != len(manifests):
            circular = [mid for mid in manifests if mid not in sorted_ids]
            logger.warning(f"检测到循环依赖，涉及模块: {circular}")
            return list(manifests)

        return sorted_ids

    async def _call_lifecycle_hook(self, module_id: str, hook: Optional[LifecycleHook], hook_name: str):
        """调用生命周期钩子（钩子失败不影响其他模块）"""
        if hook is None:
            return
        try:
            await hook()
            logger.debug(f"模块 {module_id} 的 {hook_name} 钩子执行成功")
        except Exception as e:
            logger.error(f"模块 {module_id} 的 {hook_name} 钩子执行失败: {e}")

    def load_module(self, module_id: str, manifest: Optional[ModuleManifest] = None) -> bool:
        """加载单个模块"""
        if module_id in self.modules:
            logger.warning(f"模块已加载: {module_id}")
            return True

        module_path = self.modules_path / module_id
        manifest = manifest or self.load_manifest(module_id)
        if not manifest:
            return False

        if not manifest.enabled:
            logger.debug(f"模块已禁用: {module_id}")
            return False

        satisfied, missing = self._check_dependencies(manifest)
        if not satisfied:
            logger.error(f"模块 {module_id} 依赖未满足，缺失: {missing}")
            return False

        # 加载模型（确保数据库表能被创建）
        self._import_module(f"modules.{module_id}.{module_id}_models", module_path / f"{module_id}_models.py")

        # 加载路由
        router_file = module_path / f"{module_id}_router.py"
        router_module = self._import_module(f"modules.{module_id}.{module_id}_router", router_file)
        if router_module is not None:
            router = getattr(router_module, "router", None)
            if router is None:
                logger.error(f"加载路由失败 {module_id}: 无法找到 router 对象")
                return False
            manifest.router = router
            if self.app is not None:
                prefix = manifest.router_prefix or f"/api/v1/{module_id}"
                self.app.include_router(router, prefix=prefix, tags=[manifest.name])
                logger.debug(f"注册路由成功: {prefix}")

        self.modules[module_id] = LoadedModule(manifest=manifest, path=module_path)
        logger.info(f"模块加载成功: {manifest.name} v{manifest.version}")
        return True

    def load_all(self) -> Dict[str, bool]:
        """加载所有模块"""
        manifests = {}
        for module_id in self.scan_modules():
            manifest = self.load_manifest(module_id)
            if manifest:
                manifests[module_id] = manifest

        results = {}
        for module_id in self._sort_by_dependencies(manifests):
            results[module_id] = self.load_module(module_id, manifests[module_id])
        return results

    async def run_lifecycle_hooks(self, first_install: bool = False):
        """
        运行生命周期钩子
        在数据库初始化后调用
        """
        for module_id, loaded in self.modules.items():
            manifest = loaded.manifest
            if first_install:
                await self._call_lifecycle_hook(module_id, manifest.on_install, "on_install")
            await self._call_lifecycle_hook(module_id, manifest.on_enable, "on_enable")
            await event_bus.publish(Event(
                name=Events.MODULE_LOADED,
                source="kernel",
                data={"module_id": module_id, "version": manifest.version}
            ))

    def get_module(self, module_id: str) -> Optional[LoadedModule]:
        """获取指定模块"""
        return self.modules.get(module_id)

    def get_module_info(self) -> List[dict]:
        """获取已加载模块信息"""
        return [
            {
                "id": loaded.manifest.id,
                "name": loaded.manifest.name,
                "version": loaded.manifest.version,
                "description": loaded.manifest.description,
                "permissions": loaded.manifest.permissions,
                "assets": {"css": loaded.manifest.assets.css, "js": loaded.manifest.assets.js},
            }
            for loaded in self.modules.values()
        ]

    def get_all_permissions(self) -> List[str]:
        """获取所有模块声明的权限"""
        permissions = []
        for loaded in self.modules.values():
            permissions.extend(loaded.manifest.permissions)
        return permissions


# 全局加载器实例（在main.py中初始化）
module_loader: Optional[ModuleLoader] = None


def init_loader(app: FastAPI) -> ModuleLoader:
    """初始化模块加载器"""
    global module_loader
    module_loader = ModuleLoader(app)
    return module_loader


def get_module_loader() -> Optional[ModuleLoader]:
    """获取模块加载器实例"""
    return module_loader

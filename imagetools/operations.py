"""
The fixed command table and its dispatcher.

Each :class:`Command` declares how it consumes images (:class:`InputKind`),
a typed schema for its positional arguments and named options, and a
handler.  Handlers return one model or a list of models; the dispatcher
encodes them into :class:`~imagetools.types.EncodedImage` blobs.

Usage::

    cmd = get_command("rotate")
    blobs = cmd.apply_to_one(model, ["90"])
    blobs = run_command("h-join", models, options={"spacing": 0})
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from . import assembly, filters, generators
from .canvas import CanvasFactory, create_canvas
from .codec import encode
from .config import ImageToolsConfig
from .exceptions import InvalidArgFormat, MissingImage, ValueTooBig
from .processing import ordered_map
from .types import EncodedImage, ImageModel

logger = logging.getLogger(__name__)

HandlerResult = Union[ImageModel, List[ImageModel]]


class InputKind(enum.Enum):
    """How a command consumes source images."""
    NONE = "none"           # generates images from arguments alone
    SINGLE = "single"       # runs once per source image
    MULTIPLE = "multiple"   # receives every source image at once


@dataclass(frozen=True)
class ArgSpec:
    """A positional argument."""
    name: str
    type: type = str
    variadic: bool = False


@dataclass(frozen=True)
class OptionSpec:
    """A named option, e.g. ``-r/--radius``."""
    name: str
    type: type = str
    flag: str = ""


@dataclass(frozen=True)
class CommandContext:
    """Collaborators and settings shared by every handler call."""
    config: ImageToolsConfig = field(default_factory=ImageToolsConfig)
    canvas_factory: CanvasFactory = create_canvas

    @property
    def workers(self) -> int:
        return self.config.workers


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def convert_value(value: Any, typ: type) -> Any:
    """Coerce a raw argument to *typ*, raising InvalidArgFormat."""
    if isinstance(value, typ) and not (typ is int and isinstance(value, bool)):
        return value
    try:
        if typ is bool:
            text = str(value).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError(value)
        if typ is int:
            number = float(value)
            if not number.is_integer():
                raise ValueError(value)
            return int(number)
        return typ(value)
    except (TypeError, ValueError):
        raise InvalidArgFormat(value) from None


@dataclass(frozen=True)
class Command:
    name: str
    handler: Callable[..., HandlerResult]
    input_kind: InputKind = InputKind.SINGLE
    aliases: tuple[str, ...] = ()
    args: tuple[ArgSpec, ...] = ()
    options: tuple[OptionSpec, ...] = ()

    # ---- argument binding ----------------------------------------------

    def bind(self, args: Sequence[Any] = (),
             options: Optional[Mapping[str, Any]] = None) -> tuple[list, dict]:
        """Validate and convert raw arguments against the schema."""
        bound: list = []
        remaining = list(args)
        for spec in self.args:
            if spec.variadic:
                bound.append([convert_value(v, spec.type) for v in remaining])
                remaining = []
                break
            if not remaining:
                raise InvalidArgFormat(spec.name)
            bound.append(convert_value(remaining.pop(0), spec.type))
        if remaining:
            raise InvalidArgFormat(" ".join(map(str, remaining)))

        schema = {o.name: o for o in self.options}
        bound_opts: dict = {}
        for key, value in (options or {}).items():
            if key not in schema:
                raise InvalidArgFormat(key)
            if value is None:
                continue
            bound_opts[key] = convert_value(value, schema[key].type)
        return bound, bound_opts

    # ---- application ----------------------------------------------------

    def _run(self, target: Any, args: Sequence[Any],
             options: Optional[Mapping[str, Any]],
             ctx: Optional[CommandContext]) -> List[EncodedImage]:
        ctx = ctx or CommandContext()
        bound, bound_opts = self.bind(args, options)
        result = self.handler(target, ctx, *bound, **bound_opts)
        models = result if isinstance(result, list) else [result]
        return ordered_map(encode, models, ctx.workers)

    def apply_to_one(self, model: Optional[ImageModel], args: Sequence[Any] = (),
                     options: Optional[Mapping[str, Any]] = None,
                     ctx: Optional[CommandContext] = None) -> List[EncodedImage]:
        if self.input_kind is InputKind.MULTIPLE:
            return self.apply_to_many([model] if model is not None else [],
                                      args, options, ctx)
        if self.input_kind is InputKind.SINGLE and model is None:
            raise MissingImage()
        return self._run(model, args, options, ctx)

    def apply_to_many(self, models: Sequence[ImageModel], args: Sequence[Any] = (),
                      options: Optional[Mapping[str, Any]] = None,
                      ctx: Optional[CommandContext] = None) -> List[EncodedImage]:
        if self.input_kind is InputKind.NONE:
            return self._run(None, args, options, ctx)
        if not models:
            raise MissingImage()
        if self.input_kind is InputKind.MULTIPLE:
            return self._run(list(models), args, options, ctx)
        results = ordered_map(
            lambda m: self.apply_to_one(m, args, options, ctx), list(models),
            (ctx or CommandContext()).workers)
        return [blob for blobs in results for blob in blobs]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _frame_op(fn: Callable[..., ImageModel]) -> Callable[..., ImageModel]:
    def handler(model: ImageModel, ctx: CommandContext, *args: Any,
                **options: Any) -> ImageModel:
        return fn(model, *args, workers=ctx.workers, **options)
    handler.__name__ = fn.__name__
    return handler


def _color_image(_: None, ctx: CommandContext, color: str,
                 width: Optional[int] = None,
                 height: Optional[int] = None) -> ImageModel:
    return generators.color_image(color, width, height, ctx.canvas_factory,
                                  ctx.config.size_limits)


def _gradient_image(_: None, ctx: CommandContext, colors: List[str],
                    angle: Optional[str] = None, width: Optional[int] = None,
                    height: Optional[int] = None) -> ImageModel:
    return generators.gradient_image(colors, angle, width, height,
                                     ctx.canvas_factory, ctx.config.size_limits)


def _gif_rev(model: ImageModel, ctx: CommandContext) -> ImageModel:
    return assembly.gif_reverse(model)


def _gif_obv_rev(model: ImageModel, ctx: CommandContext) -> ImageModel:
    return assembly.gif_obverse_reverse(model)


def _gif_split(model: ImageModel, ctx: CommandContext) -> List[ImageModel]:
    return assembly.gif_split(model)


def _gif_change_fps(model: ImageModel, ctx: CommandContext, rate: str,
                    force: bool = False) -> ImageModel:
    return assembly.gif_change_fps(model, rate, force,
                                   ctx.config.fps_warn_threshold_ms)


def _gif_join(models: List[ImageModel], ctx: CommandContext,
              duration: Optional[int] = None, force: bool = False) -> ImageModel:
    return assembly.gif_join(models, duration, force,
                             ctx.config.fps_warn_threshold_ms, ctx.workers)


def _four_grid(model: ImageModel, ctx: CommandContext) -> List[ImageModel]:
    return assembly.four_grid(model, ctx.workers)


def _nine_grid(model: ImageModel, ctx: CommandContext) -> List[ImageModel]:
    return assembly.nine_grid(model, ctx.workers)


def _h_join(models: List[ImageModel], ctx: CommandContext,
            spacing: Optional[int] = None, bg_color: Optional[str] = None,
            force: bool = False) -> ImageModel:
    return assembly.horizontal_join(models, spacing, bg_color, force)


def _v_join(models: List[ImageModel], ctx: CommandContext,
            spacing: Optional[int] = None, bg_color: Optional[str] = None,
            force: bool = False) -> ImageModel:
    return assembly.vertical_join(models, spacing, bg_color, force)


# ---------------------------------------------------------------------------
# Command table
# ---------------------------------------------------------------------------

_FORCE = OptionSpec("force", bool, "-f")
_WIDTH = OptionSpec("width", int, "-W")
_HEIGHT = OptionSpec("height", int, "-H")
_JOIN_OPTIONS = (OptionSpec("spacing", int, "-s"),
                 OptionSpec("bg_color", str, "-c"), _FORCE)

COMMANDS: tuple[Command, ...] = (
    Command("flip-h", _frame_op(filters.flip_horizontal),
            aliases=("水平翻转", "左翻", "右翻")),
    Command("flip-v", _frame_op(filters.flip_vertical),
            aliases=("竖直翻转", "上翻", "下翻")),
    Command("flip", _frame_op(filters.flip_both), aliases=("双向翻转",)),
    Command("gray", _frame_op(filters.grayscale), aliases=("灰度图", "黑白")),
    Command("rotate", _frame_op(filters.rotate), aliases=("旋转",),
            args=(ArgSpec("angle", float),)),
    Command("resize", _frame_op(filters.resize), aliases=("缩放",),
            args=(ArgSpec("size"),)),
    Command("crop", _frame_op(filters.crop), aliases=("裁剪",),
            args=(ArgSpec("size"),)),
    Command("invert", _frame_op(filters.invert), aliases=("反相", "反色")),
    Command("contour", _frame_op(filters.contour), aliases=("轮廓",)),
    Command("emboss", _frame_op(filters.emboss), aliases=("浮雕",)),
    Command("blur", _frame_op(filters.blur), aliases=("模糊",),
            options=(OptionSpec("radius", float, "-r"),)),
    Command("sharpen", _frame_op(filters.sharpen), aliases=("锐化",)),
    Command("pixelate", _frame_op(filters.pixelate), aliases=("像素化",),
            options=(OptionSpec("size", int, "-s"),)),
    Command("color-mask", _frame_op(filters.color_mask), aliases=("颜色滤镜",),
            args=(ArgSpec("color"),)),
    Command("color-image", _color_image, InputKind.NONE, aliases=("纯色图",),
            args=(ArgSpec("color"),), options=(_WIDTH, _HEIGHT)),
    Command("gradient-image", _gradient_image, InputKind.NONE,
            aliases=("渐变图",), args=(ArgSpec("colors", str, variadic=True),),
            options=(OptionSpec("angle", str, "-a"), _WIDTH, _HEIGHT)),
    Command("gif-rev", _gif_rev, aliases=("gif倒放", "GIF倒放", "倒放")),
    Command("gif-obv-rev", _gif_obv_rev,
            aliases=("gif正放倒放", "GIF正放倒放", "正放倒放")),
    Command("gif-change-fps", _gif_change_fps,
            aliases=("gif变速", "GIF变速", "变速"),
            args=(ArgSpec("rate"),), options=(_FORCE,)),
    Command("gif-split", _gif_split, aliases=("gif分解", "分解")),
    Command("gif-join", _gif_join, InputKind.MULTIPLE,
            aliases=("gif合成", "GIF合成", "合成"),
            options=(OptionSpec("duration", int, "-d"), _FORCE)),
    Command("four-grid", _four_grid, aliases=("四宫格",)),
    Command("nine-grid", _nine_grid, aliases=("九宫格",)),
    Command("h-join", _h_join, InputKind.MULTIPLE,
            aliases=("横向拼接", "水平拼接"), options=_JOIN_OPTIONS),
    Command("v-join", _v_join, InputKind.MULTIPLE,
            aliases=("纵向拼接", "垂直拼接"), options=_JOIN_OPTIONS),
)

_BY_NAME: Dict[str, Command] = {}
for _cmd in COMMANDS:
    _BY_NAME[_cmd.name] = _cmd
    for _alias in _cmd.aliases:
        _BY_NAME[_alias] = _cmd


def get_command(name: str) -> Command:
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(
            f"Command '{name}' not found.  "
            f"Available: {', '.join(c.name for c in COMMANDS)}"
        ) from None


def run_command(name: str, images: Sequence[ImageModel] = (),
                args: Sequence[Any] = (),
                options: Optional[Mapping[str, Any]] = None,
                ctx: Optional[CommandContext] = None) -> List[EncodedImage]:
    """Look up *name* and run it over *images*."""
    ctx = ctx or CommandContext()
    cmd = get_command(name)
    if len(images) > ctx.config.max_images:
        raise ValueTooBig(len(images), ctx.config.max_images)
    logger.info("Running %s on %d image(s) args=%s options=%s",
                cmd.name, len(images), list(args), dict(options or {}))
    blobs = cmd.apply_to_many(images, args, options, ctx)
    logger.info("%s produced %d image(s)", cmd.name, len(blobs))
    return blobs

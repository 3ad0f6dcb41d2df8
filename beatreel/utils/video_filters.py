"""Convert per-beat visual effects into ffmpeg filters."""

from typing import Callable

from beatreel.models.filter_graph import Filter
from beatreel.models.schemas import VideoFilter

SEPIA_MATRIX = (".393", ".769", ".189", "0", ".349", ".686", ".168", "0", ".272", ".534", ".131")
EMBOSS_KERNEL = ":".join(["0 -1 0 -1 5 -1 0 -1 0"] * 4)
TRANSPOSE_DIRECTIONS = {"cclock": 0, "clock": 1, "cclock_flip": 2, "clock_flip": 3}


def _color(f) -> list[Filter]:
    if f.type == "mono":
        return [Filter.of("hue", s=0)]
    if f.type == "sepia":
        return [Filter.of("colorchannelmixer", *SEPIA_MATRIX)]
    if f.type == "brightness_contrast":
        return [Filter.of("eq", brightness=f.brightness, contrast=f.contrast)]
    if f.type == "hue":
        return [Filter.of("hue", h=f.hue, s=f.saturation, b=f.brightness)]
    if f.type == "colorbalance":
        return [
            Filter.of(
                "colorbalance", rs=f.rs, gs=f.gs, bs=f.bs, rm=f.rm, gm=f.gm, bm=f.bm, rh=f.rh, gh=f.gh, bh=f.bh
            )
        ]
    if f.type == "vibrance":
        return [Filter.of("vibrance", intensity=f.intensity)]
    if f.type == "negate":
        return [Filter.of("negate", negate_alpha=1) if f.negate_alpha else Filter("negate")]
    # colorhold / colorkey
    return [Filter.of(f.type, color=f.color, similarity=f.similarity, blend=f.blend)]


def _blur_sharpen(f) -> list[Filter]:
    if f.type == "blur":
        return [Filter.of("boxblur", f.radius, f.power)]
    if f.type == "gblur":
        return [Filter.of("gblur", sigma=f.sigma)]
    if f.type == "avgblur":
        return [Filter.of("avgblur", sizeX=f.size_x, sizeY=f.size_y)]
    return [
        Filter.of(
            "unsharp",
            luma_msize_x=f.luma_msize_x,
            luma_msize_y=f.luma_msize_y,
            luma_amount=f.luma_amount,
            chroma_msize_x=f.chroma_msize_x,
            chroma_msize_y=f.chroma_msize_y,
            chroma_amount=f.chroma_amount,
        )
    ]


def _edge_noise(f) -> list[Filter]:
    if f.type == "edgedetect":
        return [Filter.of("edgedetect", low=f.low, high=f.high, mode=f.mode)]
    if f.type == "sobel":
        return [Filter.of("sobel", planes=f.planes, scale=f.scale, delta=f.delta)]
    if f.type == "emboss":
        return [Filter.of("convolution", f"'{EMBOSS_KERNEL}'")]
    if f.type == "glitch":
        if f.style == "blend":
            return [Filter.of("tblend", all_mode="difference"), Filter.of("noise", alls=f.intensity)]
        return [Filter.of("noise", alls=f.intensity, allf="t+u")]
    # grain
    return [Filter.of("noise", alls=f.intensity, allf="t")]


def _transform_effect(f) -> list[Filter]:
    if f.type in ("hflip", "vflip"):
        return [Filter(f.type)]
    if f.type == "rotate":
        return [Filter.of("rotate", angle=f.angle, fillcolor=f.fillcolor)]
    if f.type == "transpose":
        return [Filter.of("transpose", dir=TRANSPOSE_DIRECTIONS[f.dir])]
    if f.type == "vignette":
        params = {"angle": f.angle}
        if f.x0 is not None:
            params["x0"] = f.x0
        if f.y0 is not None:
            params["y0"] = f.y0
        params["mode"] = f.mode
        return [Filter.of("vignette", **params)]
    if f.type == "fade":
        params = {"type": f.mode, "start_frame": f.start_frame, "nb_frames": f.nb_frames}
        if f.alpha:
            params["alpha"] = 1
        params["color"] = f.color
        return [Filter.of("fade", **params)]
    if f.type == "pixelize":
        return [
            Filter.of("scale", f"iw/{f.width}", f"ih/{f.height}"),
            Filter.of("scale", f"{f.width}*iw", f"{f.height}*ih", flags="neighbor"),
        ]
    # pseudocolor
    return [Filter.of("pseudocolor", preset=f.preset)]


def _temporal_distortion(f) -> list[Filter]:
    if f.type == "tmix":
        if f.weights:
            return [Filter.of("tmix", frames=f.frames, weights=f.weights)]
        return [Filter.of("tmix", frames=f.frames)]
    if f.type == "lagfun":
        return [Filter.of("lagfun", decay=f.decay, planes=f.planes)]
    if f.type == "threshold":
        return [Filter.of("threshold", planes=f.planes)]
    if f.type == "elbg":
        return [Filter.of("elbg", l=f.codebook_length)]
    if f.type == "lensdistortion":
        return [Filter.of("lenscorrection", k1=f.k1, k2=f.k2)]
    if f.type == "chromashift":
        return [Filter.of("chromashift", cbh=f.cbh, cbv=f.cbv, crh=f.crh, crv=f.crv, edge=f.edge)]
    if f.type == "deflicker":
        return [Filter.of("deflicker", size=f.size, mode=f.mode)]
    # dctdnoiz
    return [Filter.of("dctdnoiz", sigma=f.sigma)]


CONVERTERS: dict[str, Callable[..., list[Filter]]] = {
    **dict.fromkeys(
        ("mono", "sepia", "brightness_contrast", "hue", "colorbalance", "vibrance", "negate", "colorhold", "colorkey"),
        _color,
    ),
    **dict.fromkeys(("blur", "gblur", "avgblur", "unsharp"), _blur_sharpen),
    **dict.fromkeys(("edgedetect", "sobel", "emboss", "glitch", "grain"), _edge_noise),
    **dict.fromkeys(
        ("hflip", "vflip", "rotate", "transpose", "vignette", "fade", "pixelize", "pseudocolor"), _transform_effect
    ),
    **dict.fromkeys(
        ("tmix", "lagfun", "threshold", "elbg", "lensdistortion", "chromashift", "deflicker", "dctdnoiz"),
        _temporal_distortion,
    ),
    "custom": lambda f: [Filter(f.filter)],
}


def convert_video_filter(video_filter: VideoFilter) -> list[Filter]:
    """Map one VideoFilter onto the ffmpeg filter(s) implementing it."""
    converter = CONVERTERS.get(video_filter.type)
    if converter is None:
        raise ValueError(f"Unknown video filter type: {video_filter.type}")
    return converter(video_filter)


def convert_video_filters(video_filters: list[VideoFilter]) -> list[Filter]:
    converted: list[Filter] = []
    for video_filter in video_filters:
        converted.extend(convert_video_filter(video_filter))
    return converted

"""Tests for per-beat video filter conversion."""

from typing import get_args

import pytest
from pydantic import TypeAdapter, ValidationError

from beatreel.models.schemas import HFlipVideoFilter, ImageBeat, MonoVideoFilter, VideoFilter, VignetteVideoFilter
from beatreel.utils.video_filters import CONVERTERS, convert_video_filter, convert_video_filters

video_filter_adapter = TypeAdapter(VideoFilter)

EMBOSS = "convolution='0 -1 0 -1 5 -1 0 -1 0:0 -1 0 -1 5 -1 0 -1 0:0 -1 0 -1 5 -1 0 -1 0:0 -1 0 -1 5 -1 0 -1 0'"


def serialize(data):
    return ",".join(f.serialize() for f in convert_video_filter(video_filter_adapter.validate_python(data)))


@pytest.mark.parametrize(
    "data,expected",
    [
        # Color
        ({"type": "mono"}, "hue=s=0"),
        ({"type": "sepia"}, "colorchannelmixer=.393:.769:.189:0:.349:.686:.168:0:.272:.534:.131"),
        ({"type": "brightness_contrast", "brightness": 0.1, "contrast": 1.2}, "eq=brightness=0.1:contrast=1.2"),
        ({"type": "hue"}, "hue=h=0:s=1:b=0"),
        ({"type": "hue", "hue": 90, "saturation": 2, "brightness": -1}, "hue=h=90:s=2:b=-1"),
        ({"type": "colorbalance", "rs": 0.3}, "colorbalance=rs=0.3:gs=0:bs=0:rm=0:gm=0:bm=0:rh=0:gh=0:bh=0"),
        ({"type": "vibrance", "intensity": 0.5}, "vibrance=intensity=0.5"),
        ({"type": "negate"}, "negate"),
        ({"type": "negate", "negate_alpha": True}, "negate=negate_alpha=1"),
        ({"type": "colorhold"}, "colorhold=color=red:similarity=0.01:blend=0"),
        (
            {"type": "colorkey", "color": "0x00FF00", "similarity": 0.2, "blend": 0.1},
            "colorkey=color=0x00FF00:similarity=0.2:blend=0.1",
        ),
        # Blur and sharpen
        ({"type": "blur"}, "boxblur=10:1"),
        ({"type": "gblur", "sigma": 5}, "gblur=sigma=5"),
        ({"type": "avgblur", "size_x": 4}, "avgblur=sizeX=4:sizeY=10"),
        (
            {"type": "unsharp"},
            "unsharp=luma_msize_x=5:luma_msize_y=5:luma_amount=1:chroma_msize_x=5:chroma_msize_y=5:chroma_amount=0",
        ),
        # Edges, noise and grain
        ({"type": "edgedetect"}, "edgedetect=low=0.2:high=0.4:mode=wires"),
        ({"type": "edgedetect", "mode": "canny"}, "edgedetect=low=0.2:high=0.4:mode=canny"),
        ({"type": "sobel"}, "sobel=planes=15:scale=1:delta=0"),
        ({"type": "emboss"}, EMBOSS),
        ({"type": "glitch"}, "noise=alls=20:allf=t+u"),
        ({"type": "glitch", "style": "blend", "intensity": 40}, "tblend=all_mode=difference,noise=alls=40"),
        ({"type": "grain", "intensity": 15}, "noise=alls=15:allf=t"),
        # Transform
        ({"type": "hflip"}, "hflip"),
        ({"type": "vflip"}, "vflip"),
        ({"type": "rotate", "angle": 0.5}, "rotate=angle=0.5:fillcolor=black"),
        ({"type": "transpose"}, "transpose=dir=1"),
        ({"type": "transpose", "dir": "cclock_flip"}, "transpose=dir=2"),
        # Effects
        ({"type": "vignette", "angle": 0.5}, "vignette=angle=0.5:mode=forward"),
        (
            {"type": "vignette", "angle": 0.5, "x0": 0.3, "y0": 0.7, "mode": "backward"},
            "vignette=angle=0.5:x0=0.3:y0=0.7:mode=backward",
        ),
        ({"type": "fade"}, "fade=type=in:start_frame=0:nb_frames=25:color=black"),
        (
            {"type": "fade", "mode": "out", "start_frame": 10, "nb_frames": 5, "alpha": True, "color": "white"},
            "fade=type=out:start_frame=10:nb_frames=5:alpha=1:color=white",
        ),
        ({"type": "pixelize"}, "scale=iw/16:ih/16,scale=16*iw:16*ih:flags=neighbor"),
        ({"type": "pseudocolor"}, "pseudocolor=preset=magma"),
        # Temporal
        ({"type": "tmix"}, "tmix=frames=3"),
        ({"type": "tmix", "weights": "1 2 1"}, "tmix=frames=3:weights=1 2 1"),
        ({"type": "lagfun"}, "lagfun=decay=0.95:planes=15"),
        # Threshold, distortion, chroma, cleanup
        ({"type": "threshold"}, "threshold=planes=15"),
        ({"type": "elbg", "codebook_length": 8}, "elbg=l=8"),
        ({"type": "lensdistortion", "k1": -0.2, "k2": 0.1}, "lenscorrection=k1=-0.2:k2=0.1"),
        ({"type": "chromashift", "cbh": 4}, "chromashift=cbh=4:cbv=0:crh=0:crv=0:edge=smear"),
        ({"type": "deflicker"}, "deflicker=size=5:mode=am"),
        ({"type": "dctdnoiz"}, "dctdnoiz=sigma=10"),
        ({"type": "custom", "filter": "eq=gamma=1.5"}, "eq=gamma=1.5"),
    ],
)
def test_convert_video_filter(data, expected):
    assert serialize(data) == expected


def test_every_filter_type_has_a_converter():
    members = get_args(get_args(VideoFilter)[0])
    types = {member.model_fields["type"].default for member in members}
    assert len(types) == 35
    assert types == set(CONVERTERS)


def test_vignette_default_angle():
    assert serialize({"type": "vignette"}).startswith("vignette=angle=0.628")


def test_vignette_center_must_be_inside_the_frame():
    with pytest.raises(ValidationError):
        VignetteVideoFilter(x0=1.5)


def test_custom_filter_needs_a_filter_string():
    with pytest.raises(ValidationError):
        video_filter_adapter.validate_python({"type": "custom"})


def test_unknown_filter_type_is_rejected():
    with pytest.raises(ValidationError):
        video_filter_adapter.validate_python({"type": "posterize"})


@pytest.mark.parametrize(
    "data",
    [
        {"type": "blur", "radius": 0},
        {"type": "hue", "hue": 200},
        {"type": "unsharp", "luma_msize_x": 25},
        {"type": "deflicker", "size": 1},
        {"type": "chromashift", "edge": "mirror"},
    ],
)
def test_out_of_range_parameters_are_rejected(data):
    with pytest.raises(ValidationError):
        video_filter_adapter.validate_python(data)


def test_beat_parses_filters_by_type():
    beat = ImageBeat.model_validate({"filters": [{"type": "hflip"}, {"type": "pixelize", "width": 8}]})
    assert isinstance(beat.filters[0], HFlipVideoFilter)
    assert beat.filters[1].width == 8


def test_convert_video_filters_keeps_order():
    filters = convert_video_filters([HFlipVideoFilter(), MonoVideoFilter()])
    assert [f.serialize() for f in filters] == ["hflip", "hue=s=0"]


def test_no_filters():
    assert convert_video_filters([]) == []

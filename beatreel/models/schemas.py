"""Pydantic models and schemas for the beat-to-movie pipeline."""

import math
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================


class FillOption(str, Enum):
    """How a media asset is reconciled with the canvas aspect ratio."""

    ASPECT_FIT = "aspectFit"
    ASPECT_FILL = "aspectFill"


class TransitionType(str, Enum):
    """Transition played at the start of a beat."""

    FADE = "fade"
    SLIDEOUT_LEFT = "slideout_left"
    SLIDEOUT_RIGHT = "slideout_right"
    SLIDEOUT_UP = "slideout_up"
    SLIDEOUT_DOWN = "slideout_down"
    SLIDEIN_LEFT = "slidein_left"
    SLIDEIN_RIGHT = "slidein_right"
    SLIDEIN_UP = "slidein_up"
    SLIDEIN_DOWN = "slidein_down"
    WIPELEFT = "wipeleft"
    WIPERIGHT = "wiperight"
    WIPEUP = "wipeup"
    WIPEDOWN = "wipedown"
    WIPETL = "wipetl"
    WIPETR = "wipetr"
    WIPEBL = "wipebl"
    WIPEBR = "wipebr"

    @property
    def is_slidein(self) -> bool:
        return self.value.startswith("slidein_")

    @property
    def is_slideout(self) -> bool:
        return self.value.startswith("slideout_")

    @property
    def is_wipe(self) -> bool:
        return self.value.startswith("wipe")


class GroupKind(str, Enum):
    """Kind of a run of consecutive beats resolved together."""

    SINGLE = "single"
    SPILLOVER = "spillover"
    VOICE_OVER = "voice_over"


# ============================================================================
# Beat Models (author input)
# ============================================================================


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Transition(_Frozen):
    """Transition into a beat."""

    type: TransitionType = Field(..., description="Transition type")
    duration: float = Field(default=0.3, ge=0.0, le=2.0, description="Requested duration in seconds")


class BeatAudioParams(_Frozen):
    """Beat specific audio parameters."""

    padding: Optional[float] = Field(default=None, ge=0.0, description="Padding override; 0 is a valid override")
    movie_volume: float = Field(default=1.0, ge=0.0, description="Volume of the movie's embedded audio")


# ============================================================================
# Video Filters (per-beat visual effects)
# ============================================================================

# Color


class MonoVideoFilter(_Frozen):
    type: Literal["mono"] = "mono"


class SepiaVideoFilter(_Frozen):
    type: Literal["sepia"] = "sepia"


class BrightnessContrastVideoFilter(_Frozen):
    type: Literal["brightness_contrast"] = "brightness_contrast"
    brightness: float = Field(default=0.0, ge=-1.0, le=1.0)
    contrast: float = Field(default=1.0, ge=0.0, le=3.0)


class HueVideoFilter(_Frozen):
    type: Literal["hue"] = "hue"
    hue: float = Field(default=0.0, ge=-180.0, le=180.0, description="Hue angle in degrees")
    saturation: float = Field(default=1.0, ge=-10.0, le=10.0, description="Saturation multiplier")
    brightness: float = Field(default=0.0, ge=-10.0, le=10.0, description="Brightness offset")


class ColorBalanceVideoFilter(_Frozen):
    """Shift red/green/blue in the shadows (s), midtones (m) and highlights (h)."""

    type: Literal["colorbalance"] = "colorbalance"
    rs: float = Field(default=0.0, ge=-1.0, le=1.0)
    gs: float = Field(default=0.0, ge=-1.0, le=1.0)
    bs: float = Field(default=0.0, ge=-1.0, le=1.0)
    rm: float = Field(default=0.0, ge=-1.0, le=1.0)
    gm: float = Field(default=0.0, ge=-1.0, le=1.0)
    bm: float = Field(default=0.0, ge=-1.0, le=1.0)
    rh: float = Field(default=0.0, ge=-1.0, le=1.0)
    gh: float = Field(default=0.0, ge=-1.0, le=1.0)
    bh: float = Field(default=0.0, ge=-1.0, le=1.0)


class VibranceVideoFilter(_Frozen):
    type: Literal["vibrance"] = "vibrance"
    intensity: float = Field(default=0.0, ge=-2.0, le=2.0)


class NegateVideoFilter(_Frozen):
    type: Literal["negate"] = "negate"
    negate_alpha: bool = False


class ColorHoldVideoFilter(_Frozen):
    """Keep one color, turn everything else gray."""

    type: Literal["colorhold"] = "colorhold"
    color: str = Field(default="red", description="Color name or 0xRRGGBB")
    similarity: float = Field(default=0.01, ge=0.0, le=1.0)
    blend: float = Field(default=0.0, ge=0.0, le=1.0)


class ColorKeyVideoFilter(_Frozen):
    """Make one color transparent."""

    type: Literal["colorkey"] = "colorkey"
    color: str = Field(default="green", description="Color name or 0xRRGGBB")
    similarity: float = Field(default=0.01, ge=0.0, le=1.0)
    blend: float = Field(default=0.0, ge=0.0, le=1.0)


# Blur and sharpen


class BlurVideoFilter(_Frozen):
    type: Literal["blur"] = "blur"
    radius: int = Field(default=10, ge=1, le=50)
    power: int = Field(default=1, ge=1, le=10)


class GBlurVideoFilter(_Frozen):
    type: Literal["gblur"] = "gblur"
    sigma: float = Field(default=30.0, ge=0.0, le=100.0)


class AvgBlurVideoFilter(_Frozen):
    type: Literal["avgblur"] = "avgblur"
    size_x: int = Field(default=10, ge=1, le=100)
    size_y: int = Field(default=10, ge=1, le=100)


class UnsharpVideoFilter(_Frozen):
    type: Literal["unsharp"] = "unsharp"
    luma_msize_x: int = Field(default=5, ge=3, le=23)
    luma_msize_y: int = Field(default=5, ge=3, le=23)
    luma_amount: float = Field(default=1.0, ge=-2.0, le=5.0)
    chroma_msize_x: int = Field(default=5, ge=3, le=23)
    chroma_msize_y: int = Field(default=5, ge=3, le=23)
    chroma_amount: float = Field(default=0.0, ge=-2.0, le=5.0)


# Edges, noise and grain


class EdgeDetectVideoFilter(_Frozen):
    type: Literal["edgedetect"] = "edgedetect"
    low: float = Field(default=0.2, ge=0.0, le=1.0)
    high: float = Field(default=0.4, ge=0.0, le=1.0)
    mode: Literal["wires", "colormix", "canny"] = "wires"


class SobelVideoFilter(_Frozen):
    type: Literal["sobel"] = "sobel"
    planes: int = Field(default=15, ge=0, le=15)
    scale: float = Field(default=1.0, ge=0.0, le=65535.0)
    delta: float = Field(default=0.0, ge=-65535.0, le=65535.0)


class EmbossVideoFilter(_Frozen):
    type: Literal["emboss"] = "emboss"


class GlitchVideoFilter(_Frozen):
    type: Literal["glitch"] = "glitch"
    intensity: int = Field(default=20, ge=1, le=100)
    style: Literal["noise", "blend"] = "noise"


class GrainVideoFilter(_Frozen):
    type: Literal["grain"] = "grain"
    intensity: int = Field(default=10, ge=1, le=100)


# Transform


class HFlipVideoFilter(_Frozen):
    type: Literal["hflip"] = "hflip"


class VFlipVideoFilter(_Frozen):
    type: Literal["vflip"] = "vflip"


class RotateVideoFilter(_Frozen):
    type: Literal["rotate"] = "rotate"
    angle: float = Field(default=0.0, description="Angle in radians")
    fillcolor: str = "black"


class TransposeVideoFilter(_Frozen):
    type: Literal["transpose"] = "transpose"
    dir: Literal["cclock", "clock", "cclock_flip", "clock_flip"] = "clock"


# Effects


class VignetteVideoFilter(_Frozen):
    type: Literal["vignette"] = "vignette"
    angle: float = Field(default=math.pi / 5, ge=0.0, le=math.pi, description="Lens angle in radians")
    x0: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Center x")
    y0: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Center y")
    mode: Literal["forward", "backward"] = "forward"


class FadeVideoFilter(_Frozen):
    type: Literal["fade"] = "fade"
    mode: Literal["in", "out"] = "in"
    start_frame: int = Field(default=0, ge=0)
    nb_frames: int = Field(default=25, ge=1)
    alpha: bool = False
    color: str = "black"


class PixelizeVideoFilter(_Frozen):
    type: Literal["pixelize"] = "pixelize"
    width: int = Field(default=16, ge=1, le=1000, description="Block width in pixels")
    height: int = Field(default=16, ge=1, le=1000, description="Block height in pixels")


class PseudoColorVideoFilter(_Frozen):
    type: Literal["pseudocolor"] = "pseudocolor"
    preset: Literal[
        "magma",
        "inferno",
        "plasma",
        "viridis",
        "turbo",
        "cividis",
        "range1",
        "range2",
        "shadows",
        "highlights",
        "solar",
        "nominal",
        "preferred",
        "total",
    ] = "magma"


# Temporal


class TmixVideoFilter(_Frozen):
    type: Literal["tmix"] = "tmix"
    frames: int = Field(default=3, ge=1, le=1024)
    weights: Optional[str] = Field(default=None, description='Space separated weights, e.g. "1 2 1"')


class LagfunVideoFilter(_Frozen):
    type: Literal["lagfun"] = "lagfun"
    decay: float = Field(default=0.95, ge=0.0, le=1.0)
    planes: int = Field(default=15, ge=0, le=15)


# Threshold, distortion, chroma, cleanup


class ThresholdVideoFilter(_Frozen):
    type: Literal["threshold"] = "threshold"
    planes: int = Field(default=15, ge=0, le=15)


class ElbgVideoFilter(_Frozen):
    """Posterize by quantizing to a small codebook of colors."""

    type: Literal["elbg"] = "elbg"
    codebook_length: int = Field(default=256, ge=1, le=256)


class LensDistortionVideoFilter(_Frozen):
    type: Literal["lensdistortion"] = "lensdistortion"
    k1: float = Field(default=0.0, ge=-1.0, le=1.0)
    k2: float = Field(default=0.0, ge=-1.0, le=1.0)


class ChromaShiftVideoFilter(_Frozen):
    type: Literal["chromashift"] = "chromashift"
    cbh: int = Field(default=0, ge=-255, le=255)
    cbv: int = Field(default=0, ge=-255, le=255)
    crh: int = Field(default=0, ge=-255, le=255)
    crv: int = Field(default=0, ge=-255, le=255)
    edge: Literal["smear", "wrap"] = "smear"


class DeflickerVideoFilter(_Frozen):
    type: Literal["deflicker"] = "deflicker"
    size: int = Field(default=5, ge=2, le=129)
    mode: Literal["am", "gm", "hm", "qm", "cm", "pm", "median"] = "am"


class DctDenoiseVideoFilter(_Frozen):
    type: Literal["dctdnoiz"] = "dctdnoiz"
    sigma: float = Field(default=10.0, ge=0.0, le=999.0)


class CustomVideoFilter(_Frozen):
    type: Literal["custom"] = "custom"
    filter: str = Field(..., description="Raw ffmpeg filter string")


VideoFilter = Annotated[
    Union[
        MonoVideoFilter,
        SepiaVideoFilter,
        BrightnessContrastVideoFilter,
        HueVideoFilter,
        ColorBalanceVideoFilter,
        VibranceVideoFilter,
        NegateVideoFilter,
        ColorHoldVideoFilter,
        ColorKeyVideoFilter,
        BlurVideoFilter,
        GBlurVideoFilter,
        AvgBlurVideoFilter,
        UnsharpVideoFilter,
        EdgeDetectVideoFilter,
        SobelVideoFilter,
        EmbossVideoFilter,
        GlitchVideoFilter,
        GrainVideoFilter,
        HFlipVideoFilter,
        VFlipVideoFilter,
        RotateVideoFilter,
        TransposeVideoFilter,
        VignetteVideoFilter,
        FadeVideoFilter,
        PixelizeVideoFilter,
        PseudoColorVideoFilter,
        TmixVideoFilter,
        LagfunVideoFilter,
        ThresholdVideoFilter,
        ElbgVideoFilter,
        LensDistortionVideoFilter,
        ChromaShiftVideoFilter,
        DeflickerVideoFilter,
        DctDenoiseVideoFilter,
        CustomVideoFilter,
    ],
    Field(discriminator="type"),
]


class CaptionSplit(_Frozen):
    """How a caption text is split into timed segments."""

    type: Literal["none", "delimiters"] = "none"
    delimiters: Optional[list[str]] = None


class _BeatBase(_Frozen):
    id: Optional[str] = Field(default=None, description="Unique identifier for the beat")
    text: str = Field(default="", description="Narration text")
    duration: Optional[float] = Field(default=None, gt=0.0, description="Explicit beat duration in seconds")
    audio_params: BeatAudioParams = Field(default_factory=BeatAudioParams)
    transition: Optional[Transition] = None
    fill_option: Optional[FillOption] = None
    speed: float = Field(default=1.0, gt=0.0, description="Playback speed; 2.0 is double speed")
    filters: list[VideoFilter] = Field(default_factory=list)
    caption_texts: Optional[list[str]] = Field(default=None, description="Manual caption segments")
    caption_split: CaptionSplit = Field(default_factory=CaptionSplit)

    @property
    def padding(self) -> Optional[float]:
        return self.audio_params.padding

    @property
    def has_visual(self) -> bool:
        return True


class MovieBeat(_BeatBase):
    """Beat whose visual is a movie clip."""

    kind: Literal["movie"] = "movie"


class VoiceOverBeat(_BeatBase):
    """Beat narrating over the preceding movie beat; has no visual of its own."""

    kind: Literal["voice_over"] = "voice_over"
    start_at: Optional[float] = Field(default=None, ge=0.0, description="Seconds into the group's movie")

    @property
    def has_visual(self) -> bool:
        return False


class ImageBeat(_BeatBase):
    """Beat whose visual is a still image (slide, chart, generated image)."""

    kind: Literal["image"] = "image"


class PlainBeat(_BeatBase):
    """Beat with no declared media; the renderer still supplies an image."""

    kind: Literal["plain"] = "plain"


Beat = Annotated[Union[MovieBeat, VoiceOverBeat, ImageBeat, PlainBeat], Field(discriminator="kind")]


# ============================================================================
# Produced Media & Facts
# ============================================================================


class CaptionSegment(_Frozen):
    """A piece of caption text and its absolute display window."""

    text: str
    start_at: float = Field(..., ge=0.0)
    end_at: float = Field(..., ge=0.0)


class CaptionFile(_Frozen):
    """A rendered caption image and its absolute display window."""

    file: str
    start_at: float = Field(..., ge=0.0)
    end_at: float = Field(..., ge=0.0)


class BeatMedia(_Frozen):
    """Files produced for one beat by the generation collaborators."""

    audio_file: Optional[str] = None
    image_file: Optional[str] = None
    movie_file: Optional[str] = None
    caption_images: list[str] = Field(default_factory=list, description="Rendered caption images, one per segment")

    @property
    def visual_file(self) -> Optional[str]:
        return self.movie_file or self.image_file


class MediaFacts(_Frozen):
    """Duration and existence facts for one beat, produced by the probe."""

    movie_duration: float = Field(default=0.0, ge=0.0)
    audio_duration: float = Field(default=0.0, ge=0.0)
    has_media: bool = Field(default=False, description="Beat owns a directly produced audio or movie asset")
    has_movie_audio: bool = False


class PaddingPolicy(_Frozen):
    """Silence inserted between beats and around the whole track."""

    default_padding: float = Field(default=0.3, ge=0.0)
    closing_padding: float = Field(default=0.8, ge=0.0)
    intro_padding: float = Field(default=1.0, ge=0.0)
    outro_padding: float = Field(default=1.0, ge=0.0)


class CanvasSize(_Frozen):
    """Output canvas dimensions in pixels."""

    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)


class MovieScript(_Frozen):
    """A complete movie request: beats plus everything produced for them."""

    title: str = ""
    beats: list[Beat]
    media: list[BeatMedia] = Field(default_factory=list)
    padding: PaddingPolicy = Field(default_factory=PaddingPolicy)
    canvas: CanvasSize = Field(default_factory=CanvasSize)
    fill_option: FillOption = FillOption.ASPECT_FIT
    bgm_file: Optional[str] = None

    def media_for(self, index: int) -> BeatMedia:
        if index < len(self.media):
            return self.media[index]
        return BeatMedia()

    def fill_option_for(self, index: int) -> FillOption:
        return self.beats[index].fill_option or self.fill_option


# ============================================================================
# Reconciliation & Planning Output
# ============================================================================


class ReconciledBeat(_Frozen):
    """Authoritative timing of one beat."""

    duration: float = Field(..., ge=0.0, description="0 only for a voice-over beat left no time by an overrun")
    start_at: float = Field(..., ge=0.0)
    silence_duration: float = Field(default=0.0, ge=0.0)

    @property
    def end_at(self) -> float:
        return self.start_at + self.duration


class BeatGroup(_Frozen):
    """Consecutive beat indices resolved by one algorithm."""

    kind: GroupKind
    indices: list[int]


class TransitionPlanEntry(_Frozen):
    """Clamped timing of one transition."""

    beat_index: int = Field(..., description="Beat declaring the transition")
    source_index: int = Field(..., description="Nearest earlier beat with a visual")
    type: TransitionType
    first_duration: float = Field(..., description="Seconds taken from the previous beat")
    last_duration: float = Field(..., description="Seconds taken from this beat")

    @property
    def duration(self) -> float:
        return min(self.first_duration, self.last_duration)


class TransitionPlan(_Frozen):
    """Which beats need frame extraction and how long each transition runs."""

    entries: list[TransitionPlanEntry] = Field(default_factory=list)
    needs_first_frame: list[bool] = Field(default_factory=list)
    needs_last_frame: list[bool] = Field(default_factory=list)

    def entry_for(self, beat_index: int) -> Optional[TransitionPlanEntry]:
        for entry in self.entries:
            if entry.beat_index == beat_index:
                return entry
        return None

    def frame_duration_for(self, beat_index: int, fallback: float) -> tuple[float, float]:
        """Canvas durations for the (first, last) frame layers of a beat."""
        first = fallback
        last = fallback
        own = self.entry_for(beat_index)
        if own is not None:
            first = own.duration
        for entry in self.entries:
            if entry.source_index == beat_index:
                last = entry.duration
        return first, last

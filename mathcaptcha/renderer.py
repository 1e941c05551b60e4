import random
import logging
import threading
from io import BytesIO
from functools import lru_cache
from concurrent.futures import ThreadPoolExecutor

from PIL import Image, ImageDraw, ImageFont

from .config import DEFAULT_OPTIONS
from .errors import CaptchaRenderError

logger = logging.getLogger(__name__)

STYLE_SUFFIXES = {
    "regular": ("", "-Regular"),
    "bold": ("-Bold",),
    "italic": ("-Italic", "-Oblique"),
    "bold_italic": ("-BoldItalic", "-BoldOblique"),
}

TEXT_MARGIN = 15


@lru_cache(maxsize=32)
def find_font(families, style, size):
    """Return the first installed font for `families` in `style`.

    Falls back to any style of the same families, then to Pillow's built-in
    font, so a font is always returned.
    """
    fallback_styles = [style] + [s for s in STYLE_SUFFIXES if s != style]
    for candidate_style in fallback_styles:
        for family in families:
            for suffix in STYLE_SUFFIXES[candidate_style]:
                try:
                    font = ImageFont.truetype(f"{family}{suffix}.ttf", size)
                except OSError:
                    continue
                if candidate_style != style:
                    logger.warning(f"No {style} font found in {families}, using {family}{suffix}")
                return font
    logger.warning(f"None of {families} is installed, using the default font")
    return ImageFont.load_default(size)


def _next(rng, low, high):
    """rng.randrange(low, high), collapsing an empty range to `low`."""
    if high <= low:
        return low
    return rng.randrange(low, high)


def _clamp(value, low, high):
    return max(low, min(value, high))


class CaptchaRenderer:
    def render(self, text, options=DEFAULT_OPTIONS, rng=None) -> bytes:
        rng = rng or random.Random()
        width, height = options.width, options.height

        glyphs = Image.new('RGBA', (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(glyphs)
        font = find_font(tuple(options.font_families), options.font_style, options.font_size)

        position = 0.0
        start_with = rng.randrange(5, 10)
        for character in text:
            color = rng.choice(options.text_colors)
            x = _clamp(start_with + position, 0, width - 1)
            y = _clamp(rng.randrange(6, 13), 0, height - 1)
            draw.text((x, y), character, font=font, fill=color)
            position += draw.textlength(character, font=font)

        glyphs = self.rotate(glyphs, options, rng)

        text_width = int(draw.textlength(text, font=font))
        surface = Image.new('RGBA', (text_width + TEXT_MARGIN, height), options.background_color)
        canvas = ImageDraw.Draw(surface)
        lock = threading.Lock()

        def draw_line(local_rng):
            x0 = _next(local_rng, 0, _next(local_rng, 0, 30))
            y0 = _next(local_rng, 10, surface.height)
            x1 = _next(local_rng, 30, surface.width)
            y1 = _next(local_rng, 0, surface.height)
            points = [
                (_clamp(x0, 0, surface.width - 1), _clamp(y0, 0, surface.height - 1)),
                (_clamp(x1, 0, surface.width - 1), _clamp(y1, 0, surface.height - 1)),
            ]
            color = local_rng.choice(options.text_colors)
            thickness = local_rng.uniform(options.min_line_thickness, options.max_line_thickness)
            with lock:
                canvas.line(points, fill=color, width=max(1, round(thickness)))

        def draw_dot(local_rng):
            x0 = _next(local_rng, 0, surface.width - 1)
            y0 = _next(local_rng, 0, surface.height - 1)
            color = local_rng.choice(options.noise_rate_colors)
            thickness = local_rng.uniform(0.5, 1.5)
            with lock:
                canvas.line([(x0, y0), (x0 + 0.01, y0 + 0.01)], fill=color, width=max(1, round(thickness)))

        self.scatter(draw_line, options.draw_lines, options.noise_workers, rng)

        # Glyphs go on top of the lines but stay partly transparent
        alpha = glyphs.getchannel('A').point(lambda a: int(a * options.text_opacity))
        glyphs.putalpha(alpha)
        overlay = glyphs.crop((0, 0, min(glyphs.width, surface.width), min(glyphs.height, surface.height)))
        surface.alpha_composite(overlay)

        self.scatter(draw_dot, options.noise_rate, options.noise_workers, rng)

        surface = surface.resize((width, height), Image.Resampling.LANCZOS)
        return self.encode(surface, options.image_format)

    @staticmethod
    def rotate(image, options, rng):
        pivot = (_next(rng, 10, options.width), _next(rng, 10, options.height))
        pivot = (_clamp(pivot[0], 0, options.width - 1), _clamp(pivot[1], 0, options.height - 1))
        degrees = _next(rng, 0, options.max_rotation_degrees)
        # Pillow rotates counter clockwise
        return image.rotate(-degrees, resample=Image.Resampling.BICUBIC, center=pivot)

    @staticmethod
    def scatter(draw_one, count, workers, rng):
        """Call `draw_one` `count` times spread over `workers` threads.

        Every worker gets its own generator seeded from `rng`; `draw_one` must
        serialize its own writes to the canvas.
        """
        if count <= 0:
            return
        workers = min(workers, count)
        if workers == 1:
            for _ in range(count):
                draw_one(rng)
            return

        def work(seed, iterations):
            local_rng = random.Random(seed)
            for _ in range(iterations):
                draw_one(local_rng)

        chunks = [count // workers + (1 if i < count % workers else 0) for i in range(workers)]
        seeds = [rng.getrandbits(64) for _ in chunks]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(work, seed, iterations) for seed, iterations in zip(seeds, chunks)]
            for future in futures:
                future.result()

    @staticmethod
    def encode(image, image_format):
        output = BytesIO()
        try:
            image.convert('RGB').save(output, format=image_format)
        except (KeyError, OSError, ValueError) as e:
            logger.error(f"Error encoding captcha image as {image_format}: {e}")
            raise CaptchaRenderError(f"Could not encode captcha image as {image_format}") from e
        return output.getvalue()


renderer = CaptchaRenderer()

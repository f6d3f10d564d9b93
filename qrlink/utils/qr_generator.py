import io
import qrcode
from PIL import ImageColor
from qrcode.image.styledpil import StyledPilImage
from qrcode.image.styles.moduledrawers import (
    SquareModuleDrawer, GappedSquareModuleDrawer,
    CircleModuleDrawer, RoundedModuleDrawer
)
from qrcode.image.styles.colormasks import SolidFillColorMask
from flask import current_app

DRAWERS = {
    "square": SquareModuleDrawer,
    "dots": GappedSquareModuleDrawer,
    "circle": CircleModuleDrawer,
    "rounded": RoundedModuleDrawer,
}


def redirect_url_for(short_code: str) -> str:
    return f"{current_app.config['BASE_URL']}/go/{short_code}"


def render_qr_png(short_code: str, color_dark: str = "#000000", style: str = "square") -> bytes:
    """Render the redirect URL for short_code as a PNG.

    Unknown colors fall back to black and unknown styles to square modules.
    """
    try:
        fill_rgb = ImageColor.getrgb(color_dark)
    except ValueError:
        fill_rgb = (0, 0, 0)
    back_rgb = (255, 255, 255)

    drawer = DRAWERS.get((style or "square").lower(), SquareModuleDrawer)()

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=4,
    )
    qr.add_data(redirect_url_for(short_code))
    qr.make(fit=True)

    qr_img = qr.make_image(
        image_factory=StyledPilImage,
        module_drawer=drawer,
        color_mask=SolidFillColorMask(back_color=back_rgb, front_color=fill_rgb)
    ).convert("RGB")

    buf = io.BytesIO()
    qr_img.save(buf, format="PNG")
    return buf.getvalue()

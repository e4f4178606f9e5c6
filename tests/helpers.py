"""Layer images and random sources shared by the test suites."""
from PIL import Image

SIZE = (4, 4)
BACKGROUNDS = {
    "blue.png": (0, 0, 255, 255),
    "green.png": (0, 255, 0, 255),
    "red.png": (255, 0, 0, 255),
}
HATS = {
    ("common", "cap.png"): (255, 255, 255, 255),
    ("rare", "crown.png"): (255, 215, 0, 255),
}


def write_layer(path, color, size=SIZE, rows=None):
    """Write an RGBA png filled with ``color`` on the first ``rows`` rows.

    All rows are filled by default.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGBA", size, (0, 0, 0, 0))
    rows = size[1] if rows is None else rows
    for y in range(rows):
        for x in range(size[0]):
            img.putpixel((x, y), color)
    img.save(path)
    return path


def make_random(values):
    """Random source returning ``values`` in order."""
    it = iter(values)
    return lambda: next(it)

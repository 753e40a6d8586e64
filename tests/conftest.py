import sys
import os
import pytest

# Add src/python to the path so tests can import modules directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src', 'python'))


def pin_record(number, x, y, name="", pin_type="0", rotation=0):
    return (f"P~show~{pin_type}~{number}~{x}~{y}~{rotation}~gge{number}~0"
            f"^^{x}~{y}^^M {x} {y} h 10~#880000"
            f"^^1~{x}~{y}~0~{name}~start~~~#0000FF"
            f"^^1~{x}~{y}~0~{number}~end~~~#0000FF")


def pad_record(number, x, y, width, height, shape="RECT", layer=1, hole_radius=0,
               points="", rotation=0):
    return (f"PAD~{shape}~{x}~{y}~{width}~{height}~{layer}~~{number}~{hole_radius}"
            f"~{points}~{rotation}~gge{number}~0~~Y~0~0~0.2~{x},{y}")


def make_resistor_result(dx=0, dy=0, pad_width=3, prefix="R?", lcsc_number="C25804"):
    """EasyEDA `result` payload for a two-pin 0603 resistor.

    `dx`/`dy` shift the origins and every coordinate together.
    """
    sx, sy = 400 + dx, 300 + dy
    fx, fy = 4000 + dx, 3000 + dy
    return {
        "title": "0603WAF1002T5E",
        "SMT": True,
        "lcsc": {"number": lcsc_number,
                 "url": f"https://lcsc.com/product-detail/{lcsc_number}.html"},
        "dataStr": {
            "head": {
                "x": sx, "y": sy,
                "c_para": {
                    "pre": prefix,
                    "name": "10k",
                    "package": "0603",
                    "BOM_Manufacturer": "UNI-ROYAL(Uniroyal Elec)",
                    "BOM_Supplier Part": lcsc_number,
                    "BOM_JLCPCB Part Class": "Basic Part",
                },
            },
            "shape": [
                pin_record("1", sx - 10, sy, pin_type="8"),
                pin_record("2", sx + 10, sy, pin_type="8"),
                f"R~{sx - 5}~{sy - 2}~~~10~4~#A00000~1~0~none~gge3~0~",
            ],
        },
        "packageDetail": {
            "title": "R0603",
            "dataStr": {
                "head": {"x": fx, "y": fy, "c_para": {"package": "R0603"}},
                "shape": [
                    pad_record("1", fx - 3, fy, pad_width, 3.2),
                    pad_record("2", fx + 3, fy, 3, 3.2),
                    f"TRACK~0.6~3~~{fx - 1} {fy - 2} {fx + 1} {fy - 2}~gge5~0",
                ],
            },
        },
    }


@pytest.fixture
def resistor_result():
    return make_resistor_result()


@pytest.fixture
def payload_factory():
    return make_resistor_result


@pytest.fixture
def ic_result():
    """Four-pin IC with power and ground pins, a through-hole pad and a 3D model."""
    return {
        "title": "Test regulator",
        "SMT": False,
        "lcsc": {"number": "C6186", "url": ""},
        "dataStr": {
            "head": {"x": 0, "y": 0, "c_para": {"pre": "U?", "name": "AMS1117-3.3"}},
            "shape": [
                pin_record("1", -20, 0, name="GND", pin_type="4"),
                pin_record("2", 20, 0, name="VOUT", pin_type="5"),
                pin_record("3", 0, -20, name="VIN", pin_type="4"),
                pin_record("4", 0, 20, name="TAB"),
            ],
        },
        "packageDetail": {
            "title": "SOT-223-3_L6.5-W3.4-P2.30-LS7.0-BR",
            "dataStr": {
                "head": {"x": 0, "y": 0, "c_para": {"package": "SOT-223"}},
                "shape": [
                    pad_record("1", -9, 10, 4, 6),
                    pad_record("2", 0, 10, 4, 6),
                    pad_record("3", 9, 10, 4, 6),
                    pad_record("4", 0, -10, 6, 6, shape="ELLIPSE", layer=11, hole_radius=1.5),
                    'SVGNODE~{"gId":"g1_outline","nodeName":"g","nodeType":1,'
                    '"layerid":"19","attrs":{"c_etype":"outline3D","uuid":"abc123",'
                    '"title":"SOT-223"},"childNodes":[]}',
                ],
            },
        },
    }


@pytest.fixture
def tmp_project(tmp_path):
    """Create a temporary KiCad project directory."""
    project = tmp_path / 'board'
    project.mkdir()
    (project / 'board.kicad_pro').write_text('{}')
    return project

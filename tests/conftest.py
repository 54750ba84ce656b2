from __future__ import annotations

import pytest

MERCADO_ENVIOS_LINES = [
    "^XA",
    "^CI28",
    "^FO60,60^BY3^BCN,120,Y,N,N^FD45123456789^FS",
    "^FO22,512^A0R,28,28^FD45123456789^FS",
    "^FO370,563^A0N,28,28^FH^FDPedido: 2000001234^FS",
    "^FO370,596^A0N,28,28^FH^FDNota Fiscal: 9876^FS",
    "^FO370,736^A0N,32,32^FH^FDJo_C3_A3o da Silva^FS",
    "^FO370,771^A0N,26,26^FH^FDRua das Flores, 100^FS",
    "^FO370,992^A0N,26,26^FH^FDLoja Exemplo^FS",
    "^FO370,1047^A0N,24,24^FH^FDAv. Paulista, 1000^FS",
    "^FO40,1200^BQN,2,6",
    '^FDQA,{"id":"4512"}^FS',
    "^XZ",
]

MERCADO_ENVIOS_LABEL = "\n".join(MERCADO_ENVIOS_LINES) + "\n"

PLAIN_LABEL = "\n".join(
    [
        "^XA",
        "^FO50,50^A0N,30,30^FDHello^FS",
        "^FO50,120^BCN,80,Y,N,N^FD123456^FS",
        "^XZ",
    ]
)


@pytest.fixture
def mercado_envios_label() -> str:
    return MERCADO_ENVIOS_LABEL


@pytest.fixture
def plain_label() -> str:
    return PLAIN_LABEL

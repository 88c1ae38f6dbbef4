"""Static orders served by the fixture (mock mode) record store."""

FIXTURE_ORDERS = [
    {
        "id": "recMock0000000001",
        "client": "Jeanne Dupont",
        "email": "jeanne.dupont@example.com",
        "demande": "Type: Bague\nStyle: Solitaire épuré, monture fine\nMatériaux: Or blanc, diamant",
        "images": [
            "https://picsum.photos/400/400?random=1",
            "https://picsum.photos/400/400?random=2",
            "https://picsum.photos/400/400?random=3",
            "https://picsum.photos/400/400?random=4",
        ],
        "pdf_url": "https://example.com/proposals/jeanne_dupont.pdf",
        "status": "pdf_ready",
        "selected_image": 0,
        "created_at": "2025-05-12T09:30:00+00:00",
    },
    {
        "id": "recMock0000000002",
        "client": "Camille Martin",
        "email": "camille.martin@example.com",
        "demande": "Type: Collier\nStyle: Pendentif goutte, chaîne forçat\nMatériaux: Or jaune 18 carats, saphir\nNotes: Pour un anniversaire",
        "phone": "+33 6 12 34 56 78",
        "images": [
            "https://picsum.photos/400/400?random=5",
            "https://picsum.photos/400/400?random=6",
            "https://picsum.photos/400/400?random=7",
            None,
        ],
        "status": "images_ready",
        "created_at": "2025-05-14T15:02:00+00:00",
    },
    {
        "id": "recMock0000000003",
        "client": "Louis Bernard",
        "email": "louis.bernard@example.com",
        "demande": "Type: Bracelet\nStyle: Jonc martelé, finition brossée\nMatériaux: Argent 925",
        "boutique": "Atelier Bernard",
        "images": [None, None, None, None],
        "status": "generating",
        "created_at": "2025-05-16T11:45:00+00:00",
    },
]

from lands.models.region import Region


OWNER = "alice"


def cube(x1, y1, z1, x2, y2, z2) -> Region:
    return Region((x1, y1, z1), (x2, y2, z2))

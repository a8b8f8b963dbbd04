from assettrack.utils.tree import flatten_tree


TREE = [
    {
        "name": "Security",
        "children": [
            {
                "name": "Cameras",
                "children": [
                    {
                        "name": "Dome",
                        "model_number": " DS-2CD ",
                        "children": [{"name": "Dome 4MP", "model_number": "DS-2CD2143"}],
                    },
                ],
            },
            {"name": "Readers"},
        ],
    },
]


def test_four_level_tree_has_one_entry_per_node():
    flat = flatten_tree(TREE)
    assert [f.path for f in flat] == [
        "Security",
        "Security > Cameras",
        "Security > Cameras > Dome",
        "Security > Cameras > Dome > Dome 4MP",
        "Security > Readers",
    ]
    assert [f.depth for f in flat] == [1, 2, 3, 4, 2]


def test_flat_nodes_keep_leaf_flag_and_model_number():
    flat = {f.name: f for f in flatten_tree(TREE)}
    assert not flat["Dome"].is_leaf
    assert flat["Dome 4MP"].is_leaf
    assert flat["Readers"].is_leaf
    assert flat["Dome"].model_number == "DS-2CD"
    assert flat["Dome 4MP"].hierarchy == "Security > Cameras > Dome"


def test_parents_prefix_the_path():
    flat = flatten_tree([{"name": "Switch"}], parents=("Network", "Core"))
    assert flat[0].path == "Network > Core > Switch"
    assert flat[0].depth == 3


def test_empty_input():
    assert flatten_tree(None) == []
    assert flatten_tree([]) == []

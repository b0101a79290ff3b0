import json


############ IO ################
def dump_json(json_data, output_dir):
    with open(output_dir, "w") as fout:
        fout.write(json.dumps(json_data, indent=2))


def mkdir(path):
    path.mkdir(parents=True, exist_ok=True)

import sys

from mpg_lca.config import DEFAULT_CONFIG_PATH, write_parameter_template


def generate_excel(output_file: str = DEFAULT_CONFIG_PATH):
    print(f"Generating {output_file}...")
    write_parameter_template(output_file)
    print("Done.")


def main():
    generate_excel(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH)


if __name__ == "__main__":
    main()

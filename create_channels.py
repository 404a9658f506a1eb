from channel_manager import ensure_channels_file


def main() -> None:
    file_path = ensure_channels_file("channels.txt")
    print(f"Channel file ready: {file_path.resolve()}")


if __name__ == "__main__":
    main()

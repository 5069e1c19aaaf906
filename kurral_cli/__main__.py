from kurral_cli.pipeline_cmd import main

if __name__ == "__main__":
    main()

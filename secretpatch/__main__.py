from secretpatch.cli import main

main()
